"""Token storage for tokentalk.

A token is a caller-numbered value that the substitution pass swaps in for
"token N" references. Stores are plain key-record stores: they do not
enforce id uniqueness, so creating an id twice leaves two records and lookups
return the oldest one.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tokentalk.utils.errors import StorageError, TokenNotFound

logger = logging.getLogger(__name__)


@dataclass
class Token:
    """A stored token."""

    token_id: int
    value: str

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"token_id": self.token_id, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        """Create from dictionary."""
        return cls(token_id=int(data["token_id"]), value=str(data["value"]))


class TokenStore(ABC):
    """Key-record storage for tokens."""

    @abstractmethod
    def get_all(self) -> list[Token]:
        """All tokens, in insertion order."""

    @abstractmethod
    def create(self, token_id: int, value: str) -> Token:
        """Store a new token and return it."""

    @abstractmethod
    def delete(self, token_id: int) -> None:
        """Delete a token. Deleting an absent id is a no-op."""

    def find(self, token_id: int) -> Optional[Token]:
        """Get a token by id, or None if there is none."""
        for token in self.get_all():
            if token.token_id == token_id:
                return token
        return None

    def get(self, token_id: int) -> Token:
        """Get a token by id.

        Raises:
            TokenNotFound: if no token has this id
        """
        token = self.find(token_id)
        if token is None:
            raise TokenNotFound(token_id)
        return token

    def __contains__(self, token_id: object) -> bool:
        return isinstance(token_id, int) and self.find(token_id) is not None

    def __len__(self) -> int:
        return len(self.get_all())


class InMemoryTokenStore(TokenStore):
    """Token store that lives for the life of the process."""

    def __init__(self, tokens: Optional[list[Token]] = None):
        self._tokens: list[Token] = list(tokens or [])

    def get_all(self) -> list[Token]:
        return list(self._tokens)

    def create(self, token_id: int, value: str) -> Token:
        token = Token(token_id=token_id, value=value)
        self._tokens.append(token)
        logger.debug(f"Created token {token_id}")
        return token

    def delete(self, token_id: int) -> None:
        for i, token in enumerate(self._tokens):
            if token.token_id == token_id:
                del self._tokens[i]
                logger.debug(f"Deleted token {token_id}")
                return


class JsonTokenStore(InMemoryTokenStore):
    """Token store persisted to a JSON file after every change."""

    def __init__(self, path: Path):
        """Initialize the store.

        Args:
            path: JSON file holding the tokens (created on first write)
        """
        super().__init__()
        self.path = Path(path).expanduser()
        self._load()

    def _load(self) -> None:
        """Load tokens from disk."""
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            self._tokens = [Token.from_dict(t) for t in data]
            logger.debug(f"Loaded {len(self._tokens)} tokens from {self.path}")
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Failed to load tokens from {self.path}: {e}", original=e) from e

    def _save(self) -> None:
        """Save tokens to disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump([t.to_dict() for t in self._tokens], f, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to save tokens to {self.path}: {e}", original=e) from e

    def create(self, token_id: int, value: str) -> Token:
        token = super().create(token_id, value)
        self._save()
        return token

    def delete(self, token_id: int) -> None:
        before = len(self._tokens)
        super().delete(token_id)
        if len(self._tokens) != before:
            self._save()
