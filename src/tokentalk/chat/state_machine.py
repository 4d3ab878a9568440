"""Conversational state machine for managing tokens.

Each call to ``TokenConversationEngine.process_turn`` handles exactly one
user utterance:

1. The substitution pass rewrites "token N" references in the text.
2. If the turn does not concern the token manager, nothing else happens.
3. With no prior context the utterance is classified and the matching flow
   is started. A flow either answers right away or asks a question and
   returns a continuation context.
4. With a prior context the utterance is the answer to that question, and
   the flow named by the context resumes.

The engine keeps no state between calls. Everything a flow needs on its next
turn is in the returned context string, except the id collected by the
create flow, which goes to the injected PendingStore under the session id.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from tokentalk.chat.context import (
    GET_VALUE,
    NAMESPACE,
    ContextAction,
    ConversationContext,
    namespace_of,
)
from tokentalk.chat.diagnostics import DiagnosticSink, LoggingDiagnosticSink
from tokentalk.chat.intents import Intent, IntentType, extract_number, parse_intent
from tokentalk.chat.substitution import TextSubstitutor
from tokentalk.data.history import InteractionHistory
from tokentalk.data.pending import PendingStore
from tokentalk.data.tokens import TokenStore
from tokentalk.utils.errors import (
    LostPendingState,
    MalformedInput,
    TokenNotFound,
    UnknownContext,
)

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"


# =============================================================================
# Responses
# =============================================================================

ASK_CREATE_ID = "What ID would you like to give this new token?"
ASK_CREATE_VALUE = "What value would you like to give token {token_id}?"
ASK_DELETE_ID = "Which token ID would you like to delete?"
ASK_GET_ID = "Which token ID would you like to get the value of?"

CREATED = "New token ID {token_id} created with value: {value}"
DELETED = "Token ID {token_id} with value: {value}. Has been deleted"
FOUND = "Token ID {token_id}. Value: {value}"
LISTING = "Listing available tokens: {listing}"
LIST_ITEM = "ID: {token_id}. Value: {value}"
LIST_EMPTY = "No available tokens"
UPDATE_UNSUPPORTED = "Simply delete and re-create the token"

RETRY_NUMBER = "Sorry, I need a valid number. Try again"
INVALID_NUMBER = (
    "Sorry, I need a valid number. Please ensure the token number does not come "
    "immediately after the word token in your command, or else it would be swapped out"
)
LOST_ID = "Sorry, I have lost the token ID. What was it again?"
EMPTY_VALUE = "You need to specify a non-empty value, give it another try"
NOT_FOUND = "Sorry, I could not find token ID {token_id}"
GENERIC_ERROR = "An error occured, please see the logs for more details"


# =============================================================================
# Turn
# =============================================================================


@dataclass
class Turn:
    """One utterance being processed.

    Handlers read ``text``, ``prior_context`` and ``session_id`` and write
    ``response``, ``context`` and ``closed``. ``context`` starts out equal to
    the prior context, so a handler that does not touch it leaves the
    conversation where it was.
    """

    text: str
    prior_context: Optional[str] = None
    session_id: str = DEFAULT_SESSION
    response: Optional[str] = None
    context: Optional[str] = None
    closed: bool = False

    def __post_init__(self) -> None:
        if self.context is None:
            self.context = self.prior_context

    def reply(
        self,
        message: str,
        context: Optional[ConversationContext] = None,
        close: bool = False,
    ) -> "Turn":
        """Set the response and, optionally, the next context."""
        self.response = message
        if context is not None:
            self.context = context.serialize()
        if close:
            self.closed = True
        return self


@dataclass(frozen=True)
class TurnResult:
    """What the host gets back for one turn."""

    rewritten_text: str
    response: Optional[str] = None
    context: Optional[str] = None
    closed: bool = False
    handled: bool = True  # False when the turn did not concern tokens


# =============================================================================
# Engine
# =============================================================================


class TokenConversationEngine:
    """Create, read, list and delete tokens over several conversational turns."""

    def __init__(
        self,
        store: TokenStore,
        pending: Optional[PendingStore] = None,
        diagnostics: Optional[DiagnosticSink] = None,
        history: Optional[InteractionHistory] = None,
        namespace: str = NAMESPACE,
        keyword: str = "token",
    ):
        """Initialize the engine.

        Args:
            store: Where tokens live
            pending: Where the create flow parks its id between turns
            diagnostics: Sink for notices, warnings and errors
            history: Log of rewritten texts (optional)
            namespace: First segment of every context this engine owns
            keyword: Word that makes a fresh turn concern the token manager
        """
        self.store = store
        self.pending = pending if pending is not None else PendingStore()
        self.diagnostics = diagnostics or LoggingDiagnosticSink()
        self.namespace = namespace
        self.keyword = keyword.lower()
        self.substitutor = TextSubstitutor(
            store, diagnostics=self.diagnostics, history=history, source_tag=namespace
        )

        self._initializers: dict[IntentType, Callable[[Turn, Intent], Turn]] = {
            IntentType.CREATE: self._start_create,
            IntentType.UPDATE: self._start_update,
            IntentType.DELETE: self._start_delete,
            IntentType.LIST: self._start_list,
            IntentType.GET: self._start_get,
        }
        self._resumers: dict[ContextAction, Callable[[Turn, ConversationContext], Turn]] = {
            ContextAction.CREATE: self._handle_create,
            ContextAction.DELETE: self._handle_delete,
            ContextAction.GET: self._handle_get,
        }

    def process_turn(
        self,
        text: str,
        prior_context: Optional[str] = None,
        session_id: str = DEFAULT_SESSION,
    ) -> TurnResult:
        """Process one utterance.

        Args:
            text: Raw utterance
            prior_context: Context returned by the previous turn, if any
            session_id: Conversation the utterance belongs to

        Returns:
            TurnResult with the rewritten text, response and next context
        """
        rewritten = self.substitutor.substitute(text, session_id=session_id).text
        turn = Turn(text=rewritten, prior_context=prior_context or None, session_id=session_id)

        if not self.concerns(text, turn.prior_context):
            return TurnResult(rewritten_text=rewritten, context=turn.context, handled=False)

        if turn.prior_context is None:
            turn = self._route(turn)
        else:
            turn = self._resume(turn)

        logger.debug(
            f"Turn in session {session_id}: {turn.prior_context!r} -> {turn.context!r}"
            f" (closed={turn.closed})"
        )
        return TurnResult(
            rewritten_text=rewritten,
            response=turn.response,
            context=turn.context,
            closed=turn.closed,
        )

    def concerns(self, text: str, prior_context: Optional[str] = None) -> bool:
        """Whether a turn is for the token manager.

        A continuing conversation is ours when its context carries our
        namespace; a fresh one when the raw text mentions the keyword.
        Substitution may have swapped the keyword out, so the text checked
        is the one before substitution.
        """
        if prior_context:
            return namespace_of(prior_context) == self.namespace
        return self.keyword in text.lower()

    def _context(self, action: ContextAction) -> ConversationContext:
        return ConversationContext(action=action, namespace=self.namespace)

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    def _route(self, turn: Turn) -> Turn:
        """Start a flow for a fresh turn."""
        intent = parse_intent(turn.text)
        initializer = self._initializers.get(intent.type)
        if initializer is None:
            self.diagnostics.notice(
                f'String "{self.keyword}" found but no action specified', self.namespace
            )
            return turn
        logger.debug(f"Routing {intent}")
        return initializer(turn, intent)

    def _resume(self, turn: Turn) -> Turn:
        """Continue the flow named by the prior context."""
        try:
            context = ConversationContext.parse(turn.prior_context)
            handler = self._resumers.get(context.action)
            if handler is None:
                raise UnknownContext(turn.prior_context, self.namespace)
        except UnknownContext as e:
            self.diagnostics.warning(e.message, self.namespace)
            return turn.reply(GENERIC_ERROR, close=True)
        return handler(turn, context)

    # -------------------------------------------------------------------------
    # Flow initializers
    # -------------------------------------------------------------------------

    def _start_create(self, turn: Turn, intent: Intent) -> Turn:
        context = self._context(ContextAction.CREATE)
        if intent.token_id:
            return self._collect_create_id(turn, context)
        return turn.reply(ASK_CREATE_ID, context)

    def _start_update(self, turn: Turn, intent: Intent) -> Turn:
        return turn.reply(UPDATE_UNSUPPORTED, close=True)

    def _start_delete(self, turn: Turn, intent: Intent) -> Turn:
        context = self._context(ContextAction.DELETE)
        if intent.token_id:
            return self._handle_delete(turn, context)
        return turn.reply(ASK_DELETE_ID, context)

    def _start_get(self, turn: Turn, intent: Intent) -> Turn:
        context = self._context(ContextAction.GET)
        if intent.token_id:
            return self._handle_get(turn, context)
        return turn.reply(ASK_GET_ID, context)

    def _start_list(self, turn: Turn, intent: Intent) -> Turn:
        items = [
            LIST_ITEM.format(token_id=token.token_id, value=token.value)
            for token in self.store.get_all()
        ]
        listing = ". ".join(items) if items else LIST_EMPTY
        context = self._context(ContextAction.LIST).finish()
        return turn.reply(LISTING.format(listing=listing), context, close=True)

    # -------------------------------------------------------------------------
    # Response handlers
    # -------------------------------------------------------------------------

    def _handle_create(self, turn: Turn, context: ConversationContext) -> Turn:
        if context.stage == GET_VALUE and not context.done:
            return self._collect_create_value(turn, context)
        return self._collect_create_id(turn, context)

    def _collect_create_id(self, turn: Turn, context: ConversationContext) -> Turn:
        """First create question: which id. Bad input is asked again."""
        token_id = extract_number(turn.text)
        if token_id is None:
            error = MalformedInput(turn.text, context=context.serialize())
            self.diagnostics.warning(error.message, self.namespace)
            return turn.reply(RETRY_NUMBER)

        self.pending.set(turn.session_id, token_id)
        return turn.reply(
            ASK_CREATE_VALUE.format(token_id=token_id),
            context.restart().advance(GET_VALUE),
        )

    def _collect_create_value(self, turn: Turn, context: ConversationContext) -> Turn:
        """Second create question: the value. The whole answer is the value."""
        token_id = self.pending.get(turn.session_id)
        value = turn.text.strip()

        if token_id is None:
            error = LostPendingState(turn.session_id)
            self.diagnostics.error(error.message, self.namespace)
            return turn.reply(LOST_ID, context.restart())

        if not value:
            self.diagnostics.warning(
                f"Empty value found when trying to create new token ID {token_id}",
                self.namespace,
            )
            return turn.reply(EMPTY_VALUE)

        self.store.create(token_id, value)
        self.pending.clear(turn.session_id)
        logger.info(f"Created token {token_id} in session {turn.session_id}")
        return turn.reply(
            CREATED.format(token_id=token_id, value=value),
            self._context(ContextAction.CREATE).advance(GET_VALUE).finish(),
            close=True,
        )

    def _handle_delete(self, turn: Turn, context: ConversationContext) -> Turn:
        """Delete the token named in the answer. Bad input ends the conversation."""
        token_id = self._require_number(turn, context)
        if token_id is None:
            return turn.reply(INVALID_NUMBER, close=True)

        try:
            value = self.store.get(token_id).value
        except TokenNotFound as e:
            return self._not_found(turn, context, e)

        self.store.delete(token_id)
        logger.info(f"Deleted token {token_id} in session {turn.session_id}")
        return turn.reply(
            DELETED.format(token_id=token_id, value=value),
            self._context(context.action).finish(),
            close=True,
        )

    def _handle_get(self, turn: Turn, context: ConversationContext) -> Turn:
        """Read back the token named in the answer. Bad input ends the conversation."""
        token_id = self._require_number(turn, context)
        if token_id is None:
            return turn.reply(INVALID_NUMBER, close=True)

        try:
            value = self.store.get(token_id).value
        except TokenNotFound as e:
            return self._not_found(turn, context, e)

        return turn.reply(
            FOUND.format(token_id=token_id, value=value),
            self._context(context.action).finish(),
            close=True,
        )

    def _require_number(self, turn: Turn, context: ConversationContext) -> Optional[int]:
        token_id = extract_number(turn.text)
        if token_id is None:
            error = MalformedInput(turn.text, context=context.serialize())
            self.diagnostics.warning(error.message, self.namespace)
        return token_id

    def _not_found(self, turn: Turn, context: ConversationContext, error: TokenNotFound) -> Turn:
        self.diagnostics.warning(error.message, self.namespace)
        return turn.reply(
            NOT_FOUND.format(token_id=error.token_id),
            self._context(context.action).finish(),
            close=True,
        )
