"""Utility modules for tokentalk."""

from tokentalk.utils.errors import (
    ErrorCategory,
    LostPendingState,
    MalformedInput,
    StorageError,
    TokenNotFound,
    TokentalkError,
    UnknownContext,
    UnresolvedReference,
    classify_error,
    handle_errors,
)

__all__ = [
    "TokentalkError",
    "ErrorCategory",
    "UnresolvedReference",
    "MalformedInput",
    "LostPendingState",
    "TokenNotFound",
    "UnknownContext",
    "StorageError",
    "handle_errors",
    "classify_error",
]
