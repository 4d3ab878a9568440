"""Token substitution for incoming text.

Whenever the text "token NUMBER" appears, it is replaced with the value of
the token with that id. Useful for names, places or words a speech handler
keeps getting wrong, or for long bits of text saved for re-use.

Substitution runs before any command handling, so "delete token 5" reaches
the conversation engine as "delete <value of token 5>" when token 5 exists.
To manage a token by voice, say "token number 5" instead.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from tokentalk.chat.diagnostics import DiagnosticSink, LoggingDiagnosticSink
from tokentalk.data.history import AFTER_READY_TEXT, InteractionHistory
from tokentalk.data.tokens import TokenStore
from tokentalk.utils.errors import UnresolvedReference

logger = logging.getLogger(__name__)

REFERENCE_PATTERN = re.compile(r"token\s+([0-9]+)", re.IGNORECASE)


@dataclass
class SubstitutionResult:
    """Outcome of one substitution pass."""

    text: str
    original: str
    replaced: list[int] = field(default_factory=list)
    unresolved: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.text != self.original


class TextSubstitutor:
    """Replace "token N" references with stored token values."""

    def __init__(
        self,
        store: TokenStore,
        diagnostics: Optional[DiagnosticSink] = None,
        history: Optional[InteractionHistory] = None,
        source_tag: str = "drupai_token",
    ):
        self.store = store
        self.diagnostics = diagnostics or LoggingDiagnosticSink()
        self.history = history
        self.source_tag = source_tag

    def substitute(self, text: str, session_id: Optional[str] = None) -> SubstitutionResult:
        """Rewrite text with every resolvable reference replaced.

        All references are found in the original text up front and replaced
        in a single pass, so a token whose value itself reads "token 7" is
        not expanded a second time. Unresolved references are left as they
        are and reported as warnings.

        Args:
            text: Raw turn text
            session_id: Conversation the turn belongs to, for the history log

        Returns:
            SubstitutionResult with the rewritten text
        """
        result = SubstitutionResult(text=text, original=text)
        matches = list(REFERENCE_PATTERN.finditer(text))
        if not matches:
            return result

        values: dict[int, Optional[str]] = {}
        for match in matches:
            token_id = int(match.group(1))
            if token_id in values:
                continue
            token = self.store.find(token_id)
            values[token_id] = token.value if token else None
            if token is None:
                result.unresolved.append(token_id)
                self.diagnostics.warning(UnresolvedReference(token_id).message, self.source_tag)
            else:
                result.replaced.append(token_id)

        def _replace(match: re.Match) -> str:
            value = values[int(match.group(1))]
            return match.group(0) if value is None else value

        result.text = REFERENCE_PATTERN.sub(_replace, text)
        logger.debug(f"Substituted {len(result.replaced)} token reference(s)")

        if self.history is not None:
            self.history.record(
                result.text,
                source_tag=self.source_tag,
                event_label=AFTER_READY_TEXT,
                session_id=session_id,
            )
        return result
