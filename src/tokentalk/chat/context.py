"""Conversation context for the token manager.

The host hands back an opaque context string on every turn, e.g.
``drupai_token.create_response.get_value``. That string is the only state
carried between turns. It is parsed once into a ConversationContext at the
edge of the engine, dispatched on as a structured value, and serialized back
when the turn ends.

Segments: ``namespace.action[.stage...][.done]``. Segments after the action
are kept verbatim, so a context round-trips even when it carries stages this
module does not know about.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tokentalk.utils.errors import UnknownContext

NAMESPACE = "drupai_token"
SEPARATOR = "."

# Stage markers
GET_VALUE = "get_value"
DONE = "done"


class ContextAction(str, Enum):
    """Action segment of a context string."""

    CREATE = "create_response"
    DELETE = "delete_response"
    GET = "get_response"
    LIST = "list_response"


def namespace_of(raw: Optional[str]) -> Optional[str]:
    """First segment of a context string, without validating the rest."""
    if not raw:
        return None
    return raw.split(SEPARATOR, 1)[0]


@dataclass(frozen=True)
class ConversationContext:
    """Structured form of a context string."""

    action: ContextAction
    stages: tuple[str, ...] = ()
    namespace: str = NAMESPACE

    @classmethod
    def parse(cls, raw: str) -> "ConversationContext":
        """Parse a context string.

        Raises:
            UnknownContext: if the string has no action segment or the action
                is not one of ContextAction
        """
        segments = raw.split(SEPARATOR)
        namespace = segments[0] or NAMESPACE
        if len(segments) < 2:
            raise UnknownContext(raw, namespace)
        try:
            action = ContextAction(segments[1])
        except ValueError as e:
            raise UnknownContext(raw, namespace) from e
        return cls(action=action, stages=tuple(segments[2:]), namespace=segments[0])

    @property
    def stage(self) -> Optional[str]:
        """The sub-stage, if the action has moved past its first question."""
        if self.stages and self.stages[0] != DONE:
            return self.stages[0]
        return None

    @property
    def done(self) -> bool:
        return bool(self.stages) and self.stages[-1] == DONE

    def advance(self, stage: str) -> "ConversationContext":
        """Same action, one stage further."""
        return ConversationContext(self.action, self.stages + (stage,), self.namespace)

    def finish(self) -> "ConversationContext":
        """Mark the action as done."""
        return self.advance(DONE)

    def restart(self) -> "ConversationContext":
        """Back to the action's first question."""
        return ConversationContext(self.action, (), self.namespace)

    def serialize(self) -> str:
        return SEPARATOR.join((self.namespace, self.action.value) + self.stages)

    def __str__(self) -> str:
        return self.serialize()
