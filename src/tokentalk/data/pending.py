"""Pending token ids for half-finished create flows.

The create flow asks for an id on one turn and for the value on the next, so
the id has to outlive the turn that collected it. Entries are keyed by
session id so two conversations creating tokens at once never see each
other's id, and they expire so an abandoned flow does not linger.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Optional

from cachetools import TTLCache

from tokentalk.utils.errors import StorageError

logger = logging.getLogger(__name__)


class PendingStore:
    """In-memory pending ids with a TTL."""

    def __init__(
        self,
        ttl: int = 600,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ):
        """Initialize the store.

        Args:
            ttl: Seconds before a pending id is forgotten
            maxsize: Maximum number of concurrent sessions tracked
            timer: Clock used for expiry (injectable for tests)
        """
        self.ttl = ttl
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def get(self, session_id: str) -> Optional[int]:
        """Pending id for a session, or None if absent or expired."""
        return self._cache.get(session_id)

    def set(self, session_id: str, token_id: int) -> None:
        """Remember the id a session is creating."""
        self._cache[session_id] = token_id

    def clear(self, session_id: str) -> None:
        """Forget a session's pending id."""
        self._cache.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._cache


@dataclass
class PendingEntry:
    """A persisted pending id."""

    token_id: int
    created_at: float

    def is_expired(self, now: float, ttl: int) -> bool:
        return now - self.created_at > ttl


class FilePendingStore(PendingStore):
    """Pending ids persisted to a JSON file.

    Used when each turn runs in a fresh process (e.g. one ``tokentalk say``
    per utterance), where an in-memory slot would not survive.
    """

    def __init__(
        self,
        path: Path,
        ttl: int = 600,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl = ttl
        self.path = Path(path).expanduser()
        self._clock = clock
        self._entries: dict[str, PendingEntry] = {}
        self._load()

    def _load(self) -> None:
        """Load pending ids from disk, dropping expired ones."""
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # Unreadable file: start with no pending ids
            logger.warning(f"Failed to load pending ids from {self.path}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Ignoring pending ids in {self.path}: expected a JSON object")
            return
        now = self._clock()
        for session_id, entry_data in data.items():
            try:
                entry = PendingEntry(
                    token_id=int(entry_data["token_id"]),
                    created_at=float(entry_data["created_at"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping bad pending entry for session {session_id}: {e}")
                continue
            if not entry.is_expired(now, self.ttl):
                self._entries[session_id] = entry

    def _save(self) -> None:
        """Save pending ids to disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump({k: asdict(v) for k, v in self._entries.items()}, f, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to save pending ids to {self.path}: {e}", original=e) from e

    def get(self, session_id: str) -> Optional[int]:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        if entry.is_expired(self._clock(), self.ttl):
            self.clear(session_id)
            return None
        return entry.token_id

    def set(self, session_id: str, token_id: int) -> None:
        self._entries[session_id] = PendingEntry(token_id=token_id, created_at=self._clock())
        self._save()

    def clear(self, session_id: str) -> None:
        if self._entries.pop(session_id, None) is not None:
            self._save()

    def __contains__(self, session_id: str) -> bool:
        return self.get(session_id) is not None
