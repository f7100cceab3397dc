"""Session state tracking.

A session is one bounded recording interval producing exactly one
document. SessionState owns the identity (user id, session id), the
demographic and build metadata snapshotted into each document header,
the default attributes merged into every event, and the open
DocumentWriter while a session is active.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from arctic_analytics.attributes import Attribute
from arctic_analytics.diagnostics import Diagnostic, DiagnosticSink, LogSink
from arctic_analytics.document import DocumentWriter
from arctic_analytics.pipeline import UploadOutcome, UploadPipeline
from arctic_analytics.storage import DocumentStore, document_name
from arctic_analytics.types import Outcome, SessionStatus

logger = logging.getLogger(__name__)

SESSION_TIMESTAMP_FORMAT = "%Y.%m.%d-%H.%M.%S.%f"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionHeader:
    """Header fields captured when a session starts."""

    session_id: str
    user_id: str
    build_info: str = ""
    age: int = 0
    gender: str = ""
    location: str = ""
    attributes: tuple[Attribute, ...] = ()

    def write_to(self, writer: DocumentWriter) -> None:
        """Write the header and open the event list."""
        writer.write_header_field("sessionId", self.session_id)
        writer.write_header_field("userId", self.user_id)
        if self.build_info:
            writer.write_header_field("buildInfo", self.build_info)
        if self.age != 0:
            writer.write_header_field("age", self.age)
        if self.gender:
            writer.write_header_field("gender", self.gender)
        if self.location:
            writer.write_header_field("location", self.location)
        if self.attributes:
            writer.write_header_raw("attributes", "[ " + ", ".join(a.to_fragment() for a in self.attributes) + " ]")
        writer.begin_event_list()

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "build_info": self.build_info,
            "age": self.age,
            "gender": self.gender,
            "location": self.location,
            "attributes": [(a.name, a.value) for a in self.attributes],
        }


class SessionState:
    """Session lifecycle: NOT_STARTED -> ACTIVE -> ENDED (-> ACTIVE ...).

    Only one document is open at a time. Starting while active ends (and
    uploads) the current session first. Non-fatal conditions are reported
    to the diagnostic sinks and surface to callers only as return values.
    """

    def __init__(
        self,
        store: DocumentStore,
        pipeline: UploadPipeline | None = None,
        *,
        user_id: str | None = None,
        clock: Callable[[], datetime] | None = None,
        sinks: Sequence[DiagnosticSink] | None = None,
    ) -> None:
        self._store = store
        self._pipeline = pipeline
        self._clock = clock or _utcnow
        self._sinks: list[DiagnosticSink] = list(sinks) if sinks is not None else [LogSink()]
        self._status = SessionStatus.NOT_STARTED
        self._writer: DocumentWriter | None = None
        self._header: SessionHeader | None = None
        self._last_upload: UploadOutcome | None = None

        self._user_id = user_id or uuid.uuid4().hex.upper()
        self._session_id = ""
        self._session_id_pinned = False

        self._age = 0
        self._gender = ""
        self._location = ""
        self._build_info = ""
        self._default_attributes: tuple[Attribute, ...] = ()

    # -- state ------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status is SessionStatus.ACTIVE

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def header(self) -> SessionHeader | None:
        """Header of the active or most recent session."""
        return self._header

    @property
    def document_name(self) -> str | None:
        if self._header is None:
            return None
        return document_name(self._header.session_id)

    @property
    def last_upload(self) -> UploadOutcome | None:
        return self._last_upload

    def now(self) -> datetime:
        return self._clock()

    def report(self, outcome: Outcome, message: str, operation: str = "", **metadata: Any) -> Diagnostic:
        """Send a diagnostic to every sink."""
        diagnostic = Diagnostic(
            outcome=outcome,
            message=message,
            operation=operation,
            session_id=self._session_id or None,
            metadata=metadata,
        )
        for sink in self._sinks:
            sink.emit(diagnostic)
        return diagnostic

    # -- identity ---------------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._user_id

    def set_user_id(self, user_id: str) -> bool:
        if self.is_active:
            self.report(
                Outcome.INVALID_STATE_TRANSITION,
                "called while a session is in progress. Ignoring.",
                "set_user_id",
            )
            return False
        self._user_id = user_id
        logger.info("User is now (%s)", user_id)
        return True

    @property
    def session_id(self) -> str:
        return self._session_id

    def set_session_id(self, session_id: str) -> bool:
        """Use *session_id* for the next session instead of a derived one."""
        if self.is_active:
            self.report(
                Outcome.INVALID_STATE_TRANSITION,
                "called while a session is in progress. Ignoring.",
                "set_session_id",
            )
            return False
        self._session_id = session_id
        self._session_id_pinned = True
        logger.info("Session is now (%s)", session_id)
        return True

    def _next_session_id(self) -> str:
        if self._session_id_pinned:
            return self._session_id
        return f"{self._user_id}-{self.now().strftime(SESSION_TIMESTAMP_FORMAT)}"

    # -- metadata ---------------------------------------------------------

    @property
    def age(self) -> int:
        return self._age

    def set_age(self, age: int) -> None:
        self._age = int(age)

    @property
    def gender(self) -> str:
        return self._gender

    def set_gender(self, gender: str) -> None:
        self._gender = gender

    @property
    def location(self) -> str:
        return self._location

    def set_location(self, location: str) -> None:
        self._location = location

    @property
    def build_info(self) -> str:
        return self._build_info

    def set_build_info(self, build_info: str) -> None:
        self._build_info = build_info

    @property
    def default_attributes(self) -> list[Attribute]:
        return list(self._default_attributes)

    def set_default_attributes(self, attributes: Iterable[Attribute]) -> None:
        self._default_attributes = tuple(attributes)

    def merge_attributes(self, attributes: Iterable[Attribute] = ()) -> tuple[Attribute, ...]:
        """Default attributes followed by *attributes*, duplicates kept."""
        return (*self._default_attributes, *attributes)

    # -- lifecycle --------------------------------------------------------

    def start(self, attributes: Iterable[Attribute] = ()) -> bool:
        """Open a new document and write its header.

        Returns False, leaving the session inactive, if the document
        cannot be created.
        """
        if self.is_active:
            self.end()

        session_id = self._next_session_id()
        header = SessionHeader(
            session_id=session_id,
            user_id=self._user_id,
            build_info=self._build_info,
            age=self._age,
            gender=self._gender,
            location=self._location,
            attributes=tuple(attributes),
        )
        name = document_name(session_id)

        from arctic_analytics import SinkUnavailableError

        try:
            writer = DocumentWriter.open(self._store, name)
        except SinkUnavailableError as e:
            self.report(
                Outcome.SINK_UNAVAILABLE,
                f"failed to create file to log analytics events to ({e})",
                "start_session",
                document=name,
            )
            return False

        try:
            header.write_to(writer)
        except OSError as e:
            self._abandon(writer)
            self.report(
                Outcome.SINK_UNAVAILABLE,
                f"failed to write session header ({e})",
                "start_session",
                document=name,
            )
            return False

        self._writer = writer
        self._header = header
        self._session_id = session_id
        self._session_id_pinned = False
        self._status = SessionStatus.ACTIVE
        logger.info("Session created file (%s) for user (%s)", name, self._user_id)
        return True

    def _abandon(self, writer: DocumentWriter) -> None:
        try:
            writer.close()
        except OSError as e:
            logger.debug("Ignoring close failure on abandoned document '%s': %s", writer.name, e)

    def end(self) -> UploadOutcome | None:
        """Close the active document and upload it.

        Returns None when no session is active; otherwise the outcome of
        the single upload attempt (None if no pipeline is configured).
        """
        if not self.is_active or self._writer is None:
            return None

        writer = self._writer
        self._writer = None
        self._status = SessionStatus.ENDED

        try:
            writer.close()
        except OSError as e:
            self.report(Outcome.SINK_WRITE_FAILURE, f"failed to close document ({e})", "end_session")
            self._last_upload = UploadOutcome(Outcome.SINK_WRITE_FAILURE, reason=str(e))
            return self._last_upload

        outcome = None
        if self._pipeline is not None:
            outcome = self._pipeline.run(self._store, writer.name)
            if outcome.outcome is not Outcome.OK:
                self.report(outcome.outcome, outcome.reason or "upload skipped", "end_session")
        self._last_upload = outcome

        logger.info("Session ended for user (%s) and session id (%s)", self._user_id, self._session_id)
        return outcome

    def flush(self) -> bool:
        if self._writer is None:
            return False
        try:
            self._writer.flush()
        except OSError as e:
            self.report(Outcome.SINK_WRITE_FAILURE, f"failed to flush document ({e})", "flush_events")
            return False
        logger.info("Analytics file flushed")
        return True

    # -- events -----------------------------------------------------------

    def ensure_active(self, operation: str) -> bool:
        """Return True if events may be written, reporting NOT_ACTIVE otherwise."""
        if self.is_active:
            return True
        self.report(Outcome.NOT_ACTIVE, "called before start_session. Ignoring.", operation)
        return False

    def append(self, fragment: str, operation: str = "append") -> bool:
        """Append one rendered event to the active document."""
        if not self.ensure_active(operation) or self._writer is None:
            return False
        try:
            self._writer.append_event(fragment)
        except OSError as e:
            self.report(Outcome.SINK_WRITE_FAILURE, f"failed to write event ({e})", operation)
            return False
        return True
