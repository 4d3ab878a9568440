"""Conversation layer for tokentalk - substitution, intents and the turn engine."""

from tokentalk.chat.context import ContextAction, ConversationContext
from tokentalk.chat.diagnostics import (
    DiagnosticSink,
    LoggingDiagnosticSink,
    RecordingDiagnosticSink,
)
from tokentalk.chat.intents import Intent, IntentType, extract_number, parse_intent
from tokentalk.chat.state_machine import TokenConversationEngine, TurnResult
from tokentalk.chat.substitution import TextSubstitutor

__all__ = [
    "ContextAction",
    "ConversationContext",
    "DiagnosticSink",
    "LoggingDiagnosticSink",
    "RecordingDiagnosticSink",
    "Intent",
    "IntentType",
    "extract_number",
    "parse_intent",
    "TextSubstitutor",
    "TokenConversationEngine",
    "TurnResult",
]
