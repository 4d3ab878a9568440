"""Diagnostic sinks for the conversation engine.

Diagnostics are fire-and-forget: the engine reports what went wrong and
keeps going, so a sink must never raise back into a turn.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class DiagnosticLevel(str, Enum):
    """Severity of a diagnostic."""

    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"


@runtime_checkable
class DiagnosticSink(Protocol):
    """Anything that accepts notices, warnings and errors from the engine."""

    def notice(self, message: str, source_tag: str) -> None: ...

    def warning(self, message: str, source_tag: str) -> None: ...

    def error(self, message: str, source_tag: str) -> None: ...


class LoggingDiagnosticSink:
    """Forward diagnostics to the stdlib logging tree."""

    _LEVELS = {
        DiagnosticLevel.NOTICE: logging.INFO,
        DiagnosticLevel.WARNING: logging.WARNING,
        DiagnosticLevel.ERROR: logging.ERROR,
    }

    def __init__(self, logger_name: str = "tokentalk.diagnostics"):
        self._logger = logging.getLogger(logger_name)

    def _emit(self, level: DiagnosticLevel, message: str, source_tag: str) -> None:
        self._logger.log(self._LEVELS[level], "[%s] %s", source_tag, message)

    def notice(self, message: str, source_tag: str) -> None:
        self._emit(DiagnosticLevel.NOTICE, message, source_tag)

    def warning(self, message: str, source_tag: str) -> None:
        self._emit(DiagnosticLevel.WARNING, message, source_tag)

    def error(self, message: str, source_tag: str) -> None:
        self._emit(DiagnosticLevel.ERROR, message, source_tag)


@dataclass
class Diagnostic:
    """A diagnostic kept by RecordingDiagnosticSink."""

    level: DiagnosticLevel
    message: str
    source_tag: str
    timestamp: datetime = field(default_factory=datetime.now)


class RecordingDiagnosticSink(LoggingDiagnosticSink):
    """Keep diagnostics in memory as well as logging them.

    Lets a host show "what went wrong" next to a reply, and lets tests
    assert on what the engine reported.
    """

    def __init__(self, logger_name: str = "tokentalk.diagnostics"):
        super().__init__(logger_name)
        self.entries: list[Diagnostic] = []

    def _emit(self, level: DiagnosticLevel, message: str, source_tag: str) -> None:
        self.entries.append(Diagnostic(level=level, message=message, source_tag=source_tag))
        super()._emit(level, message, source_tag)

    def messages(self, level: Optional[DiagnosticLevel] = None) -> list[str]:
        """Messages recorded so far, optionally only of one level."""
        return [d.message for d in self.entries if level is None or d.level == level]

    def clear(self) -> None:
        self.entries.clear()
