"""Interaction history for tokentalk.

Every time the substitution pass rewrites a turn's text, the new text is
appended here tagged with the source and the event that produced it.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich import box
from rich.table import Table

from tokentalk.ui.console import console
from tokentalk.ui.theme import TokentalkColors
from tokentalk.utils.errors import StorageError

logger = logging.getLogger(__name__)

# Event label for text rewritten before the conversation engine sees it
AFTER_READY_TEXT = "after_ready_text"


@dataclass
class Interaction:
    """A recorded change to a turn's text."""

    id: str
    text: str
    source_tag: str
    event_label: str
    timestamp: str
    session_id: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "text": self.text,
            "source_tag": self.source_tag,
            "event_label": self.event_label,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Interaction":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            text=data["text"],
            source_tag=data["source_tag"],
            event_label=data["event_label"],
            timestamp=data["timestamp"],
            session_id=data.get("session_id"),
            metadata=data.get("metadata", {}),
        )


class InteractionHistory:
    """Append-only interaction log, optionally backed by a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize the history.

        Args:
            path: JSON file to persist to; None keeps the log in memory only
        """
        self.path = Path(path).expanduser() if path else None
        self._interactions: list[Interaction] = []
        self._load()

    def _load(self) -> None:
        """Load history from disk."""
        if self.path is None or not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
                self._interactions = [Interaction.from_dict(i) for i in data]
            logger.debug(f"Loaded {len(self._interactions)} interactions from history")
        except Exception as e:
            logger.warning(f"Failed to load interaction history: {e}")
            self._interactions = []

    def _save(self) -> None:
        """Save history to disk."""
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump([i.to_dict() for i in self._interactions], f, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to save interaction history: {e}", original=e) from e

    def record(
        self,
        text: str,
        source_tag: str,
        event_label: str,
        session_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Interaction:
        """Record a new interaction.

        Args:
            text: The text as it stands after the change
            source_tag: Who changed it
            event_label: At which point of turn processing it changed
            session_id: Conversation the turn belongs to
            metadata: Additional metadata

        Returns:
            The recorded Interaction
        """
        interaction = Interaction(
            id=str(uuid.uuid4())[:8],
            text=text,
            source_tag=source_tag,
            event_label=event_label,
            timestamp=datetime.now().isoformat(),
            session_id=session_id,
            metadata=metadata or {},
        )
        self._interactions.append(interaction)
        self._save()
        logger.debug(f"Recorded interaction {interaction.id}: {source_tag}/{event_label}")
        return interaction

    def get_all(
        self,
        event_label: Optional[str] = None,
        session_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[Interaction]:
        """Get interactions with optional filtering.

        Returns:
            List of interactions (newest first)
        """
        interactions = self._interactions.copy()

        if event_label:
            interactions = [i for i in interactions if i.event_label == event_label]
        if session_id:
            interactions = [i for i in interactions if i.session_id == session_id]

        interactions.reverse()
        return interactions[:limit]

    def clear(self) -> None:
        """Clear all interaction history."""
        self._interactions = []
        if self.path is not None and self.path.exists():
            self.path.unlink()

    def export_json(self, filepath: Path, **filters) -> int:
        """Export interactions to a JSON file.

        Returns:
            Number of interactions exported
        """
        interactions = self.get_all(**filters)
        with open(filepath, "w") as f:
            json.dump([i.to_dict() for i in interactions], f, indent=2)
        return len(interactions)

    def __len__(self) -> int:
        return len(self._interactions)


def show_history(history: InteractionHistory, limit: int = 20) -> None:
    """Display interaction history in a table."""
    interactions = history.get_all(limit=limit)

    if not interactions:
        console.print("[muted]No interactions recorded[/muted]")
        return

    table = Table(
        title="[primary]Interaction History[/primary]",
        box=box.ROUNDED,
        border_style=TokentalkColors.BORDER,
    )
    table.add_column("ID", style="dim", width=8)
    table.add_column("Time", style="muted")
    table.add_column("Session", style="info")
    table.add_column("Event", style="context")
    table.add_column("Text", style="assistant")

    for interaction in interactions:
        try:
            dt = datetime.fromisoformat(interaction.timestamp)
            time_str = dt.strftime("%m/%d %H:%M")
        except ValueError:
            time_str = interaction.timestamp[:16]

        table.add_row(
            interaction.id,
            time_str,
            interaction.session_id or "-",
            interaction.event_label,
            interaction.text,
        )

    console.print(table)
    console.print(
        f"\n[muted]Showing {len(interactions)} of {len(history)} total interactions[/muted]"
    )
