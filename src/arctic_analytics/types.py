"""Shared types, enums, and protocols for arctic-analytics."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol, Union, runtime_checkable

JsonScalar = Union[str, int, float]


class SessionStatus(Enum):
    """Lifecycle state of a provider's session."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    ENDED = "ended"


class Outcome(Enum):
    """Result classification for non-fatal conditions."""

    OK = "ok"
    SINK_UNAVAILABLE = "sink_unavailable"
    SINK_WRITE_FAILURE = "sink_write_failure"
    NOT_ACTIVE = "not_active"
    CONFIG_MISSING = "config_missing"
    STORAGE_READ_FAILURE = "storage_read_failure"
    INVALID_STATE_TRANSITION = "invalid_state_transition"

    @property
    def level(self) -> int:
        """Logging level used when this outcome is reported."""
        if self is Outcome.OK:
            return logging.INFO
        if self in (Outcome.CONFIG_MISSING, Outcome.STORAGE_READ_FAILURE, Outcome.SINK_WRITE_FAILURE):
            return logging.ERROR
        return logging.WARNING


@runtime_checkable
class ConfigSource(Protocol):
    """Protocol for configuration lookups."""

    def get(self, section: str, key: str) -> str | None: ...


@runtime_checkable
class Uploader(Protocol):
    """Protocol for the transport that delivers a signed document."""

    async def post(self, url: str, headers: dict[str, str], body: bytes) -> None: ...
