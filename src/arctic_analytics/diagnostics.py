"""Diagnostic, DiagnosticSink protocol, LogSink, StdoutSink, and FileSink.

Every non-fatal condition (a record call outside a session, a rejected
identity change, a missing upload setting, ...) produces a Diagnostic
that is sent to one or more DiagnosticSinks. The caller of the provider
only ever sees boolean or optional return values.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from arctic_analytics.types import Outcome

logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    """A structured record of a non-fatal condition."""

    outcome: Outcome
    message: str
    operation: str = ""
    session_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def level(self) -> int:
        return self.outcome.level

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "level": logging.getLevelName(self.level),
            "message": self.message,
            "operation": self.operation,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class DiagnosticSink(Protocol):
    """Protocol for diagnostic destinations."""

    def emit(self, diagnostic: Diagnostic) -> None:
        """Record a diagnostic."""
        ...


class LogSink:
    """Forwards diagnostics to the standard logging module."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    def emit(self, diagnostic: Diagnostic) -> None:
        if diagnostic.operation:
            self._logger.log(diagnostic.level, "%s: %s", diagnostic.operation, diagnostic.message)
        else:
            self._logger.log(diagnostic.level, "%s", diagnostic.message)


class StdoutSink:
    """Writes diagnostics to stdout as JSON lines."""

    def emit(self, diagnostic: Diagnostic) -> None:
        json.dump(diagnostic.to_dict(), sys.stdout)
        sys.stdout.write("\n")
        sys.stdout.flush()


class FileSink:
    """Appends diagnostics to a file as JSON lines."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def emit(self, diagnostic: Diagnostic) -> None:
        with self._path.open("a") as f:
            json.dump(diagnostic.to_dict(), f)
            f.write("\n")
