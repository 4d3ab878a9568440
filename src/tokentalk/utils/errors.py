"""Error handling utilities for tokentalk."""

import functools
import json
import logging
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from tokentalk.ui.console import console, print_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorCategory(Enum):
    """Categories of errors for user-friendly messages."""

    REFERENCE = "reference"
    INPUT = "input"
    STATE = "state"
    LOOKUP = "lookup"
    CONTEXT = "context"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class TokentalkError(Exception):
    """Base exception for tokentalk errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        suggestion: Optional[str] = None,
        original: Optional[Exception] = None,
    ):
        self.message = message
        self.category = category
        self.suggestion = suggestion
        self.original = original
        super().__init__(message)

    def display(self) -> None:
        """Display the error to the user."""
        print_error(self.message)
        if self.suggestion:
            console.print(f"[muted]Suggestion: {self.suggestion}[/muted]")


class UnresolvedReference(TokentalkError):
    """A 'token N' reference in the text names no stored token."""

    def __init__(self, token_id: int, suggestion: Optional[str] = None):
        self.token_id = token_id
        super().__init__(
            f"Token ID not found: {token_id}",
            category=ErrorCategory.REFERENCE,
            suggestion=suggestion or "List the available tokens with 'tokentalk tokens'",
        )


class MalformedInput(TokentalkError):
    """A number was expected in the text but none was found."""

    def __init__(self, text: str, context: Optional[str] = None):
        self.text = text
        self.context = context
        where = f" in context {context}" if context else ""
        super().__init__(
            f"Could not parse number from text{where}: {text}",
            category=ErrorCategory.INPUT,
        )


class LostPendingState(TokentalkError):
    """The token id collected earlier in a create flow is gone."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            "Lost the token ID from previous interaction, aborting creation of token",
            category=ErrorCategory.STATE,
            suggestion="The pending id may have expired; raise storage.pending_ttl",
        )


class TokenNotFound(TokentalkError):
    """Direct lookup of a token id that does not exist."""

    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(
            f"Token ID {token_id} does not exist",
            category=ErrorCategory.LOOKUP,
            suggestion="List the available tokens with 'tokentalk tokens'",
        )


class UnknownContext(TokentalkError):
    """A conversation context string that no handler understands."""

    def __init__(self, context: str, namespace: str = "drupai_token"):
        self.context = context
        self.namespace = namespace
        super().__init__(
            f"Unknown {namespace} context encountered: {context}",
            category=ErrorCategory.CONTEXT,
        )


class StorageError(TokentalkError):
    """Reading or writing a backing file failed."""

    def __init__(
        self, message: str, suggestion: Optional[str] = None, original: Optional[Exception] = None
    ):
        super().__init__(
            message,
            category=ErrorCategory.STORAGE,
            suggestion=suggestion or "Check permissions on the tokentalk data directory",
            original=original,
        )


def classify_error(error: Exception) -> TokentalkError:
    """Classify an exception into a TokentalkError category.

    Args:
        error: The original exception

    Returns:
        A TokentalkError with appropriate category and suggestion
    """
    if isinstance(error, TokentalkError):
        return error

    if isinstance(error, json.JSONDecodeError):
        return StorageError(
            f"Corrupt data file: {error}",
            suggestion="Fix or remove the file; it will be recreated",
            original=error,
        )

    if isinstance(error, PermissionError):
        return StorageError("Permission denied", original=error)

    if isinstance(error, OSError):
        return StorageError(f"File error: {error}", original=error)

    return TokentalkError(
        str(error),
        category=ErrorCategory.UNKNOWN,
        original=error,
    )


def handle_errors(
    fallback: Optional[T] = None,
    show_error: bool = True,
    reraise: bool = False,
) -> Callable:
    """Decorator to handle errors gracefully.

    Args:
        fallback: Value to return on error (default None)
        show_error: Whether to display error to user
        reraise: Whether to re-raise the error after handling

    Returns:
        Decorated function
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except TokentalkError as e:
                logger.error(f"{e.category.value} error: {e.message}", exc_info=True)
                if show_error:
                    e.display()
                if reraise:
                    raise
                return fallback
            except Exception as e:
                tokentalk_error = classify_error(e)
                logger.error(f"Unexpected error: {e}", exc_info=True)
                if show_error:
                    tokentalk_error.display()
                if reraise:
                    raise tokentalk_error from e
                return fallback

        return wrapper

    return decorator
