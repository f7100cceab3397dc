"""AnalyticsProvider — the caller-facing API.

Wires a SessionState, the EventRecorder operations, and the signed
upload pipeline together::

    provider = AnalyticsProvider(
        "Saved/Analytics",
        MemoryConfigSource.for_upload("https://collector.example.com/ingest", "s3cret"),
    )
    with provider:
        provider.start_session()
        provider.record_event("login", [Attribute("method", "password")])
    # leaving the block ends the session and uploads the document
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from arctic_analytics.attributes import Attribute
from arctic_analytics.diagnostics import DiagnosticSink
from arctic_analytics.events import RecordCounter
from arctic_analytics.pipeline import USER_AGENT, UploadOutcome, UploadPipeline
from arctic_analytics.recorder import EventRecorder
from arctic_analytics.session import SessionState
from arctic_analytics.storage import DirectoryStore, DocumentStore
from arctic_analytics.transport import BackgroundDispatcher, Dispatcher, HTTPUploader
from arctic_analytics.types import ConfigSource, SessionStatus, Uploader

logger = logging.getLogger(__name__)

DEFAULT_ANALYTICS_DIR = Path("Saved") / "Analytics"


class AnalyticsProvider(EventRecorder):
    """Records one session at a time and uploads each finished document.

    Args:
        storage: Directory for session documents, or any DocumentStore.
        config: Source of the collector ``Server`` URL and HMAC ``Secret``.
        uploader: Transport for the signed document (default: HTTPUploader).
        dispatcher: Executor for the upload coroutine
            (default: a BackgroundDispatcher owned by this provider).
        counter: Record id source (default: the process-wide counter).
        clock: Returns the current UTC time.
        sinks: Diagnostic sinks (default: a LogSink).
        secret_provider: Optional callable overriding the configured secret.
    """

    def __init__(
        self,
        storage: str | Path | DocumentStore,
        config: ConfigSource,
        uploader: Uploader | None = None,
        *,
        dispatcher: Dispatcher | None = None,
        counter: RecordCounter | None = None,
        clock: Callable[[], datetime] | None = None,
        sinks: Sequence[DiagnosticSink] | None = None,
        user_id: str | None = None,
        secret_provider: Callable[[], str | None] | None = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        store = DirectoryStore(storage) if isinstance(storage, (str, Path)) else storage

        self._owned_uploader = uploader is None
        self._uploader = uploader or HTTPUploader()
        self._owned_dispatcher = dispatcher is None
        self._dispatcher = dispatcher or BackgroundDispatcher()
        self._closed = False

        pipeline = UploadPipeline(
            config,
            self._uploader,
            self._dispatcher,
            secret_provider=secret_provider,
            user_agent=user_agent,
        )
        session = SessionState(store, pipeline, user_id=user_id, clock=clock, sinks=sinks)
        super().__init__(session, counter)

    @classmethod
    def from_settings(
        cls,
        path: str | Path,
        analytics_dir: str | Path | None = None,
        **kwargs: Any,
    ) -> AnalyticsProvider:
        """Create a provider from a YAML settings file.

        Raises:
            AnalyticsConfigError: If the settings file is invalid.
        """
        from arctic_analytics.config import load_settings

        settings = load_settings(path)
        directory = analytics_dir or settings.analytics_dir or DEFAULT_ANALYTICS_DIR
        return cls(directory, settings, **kwargs)

    # -- lifecycle --------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def is_active(self) -> bool:
        return self._session.is_active

    def start_session(self, attributes: Iterable[Attribute] = ()) -> bool:
        return self._session.start(attributes)

    def end_session(self) -> UploadOutcome | None:
        return self._session.end()

    def flush_events(self) -> bool:
        return self._session.flush()

    def close(self, timeout: float | None = 10.0) -> None:
        """End any active session, then release owned transport resources."""
        if self._closed:
            return
        self._closed = True
        self._session.end()
        if self._owned_uploader and isinstance(self._uploader, HTTPUploader):
            self._dispatcher.submit(self._uploader.close())
        if self._owned_dispatcher:
            self._dispatcher.shutdown(timeout)

    def __enter__(self) -> AnalyticsProvider:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -- identity and metadata -------------------------------------------

    @property
    def user_id(self) -> str:
        return self._session.user_id

    def get_user_id(self) -> str:
        return self._session.user_id

    def set_user_id(self, user_id: str) -> bool:
        return self._session.set_user_id(user_id)

    @property
    def session_id(self) -> str:
        return self._session.session_id

    def get_session_id(self) -> str:
        return self._session.session_id

    def set_session_id(self, session_id: str) -> bool:
        return self._session.set_session_id(session_id)

    def set_age(self, age: int) -> None:
        self._session.set_age(age)

    def set_gender(self, gender: str) -> None:
        self._session.set_gender(gender)

    def set_location(self, location: str) -> None:
        self._session.set_location(location)

    def set_build_info(self, build_info: str) -> None:
        self._session.set_build_info(build_info)

    def set_default_attributes(self, attributes: Iterable[Attribute]) -> None:
        self._session.set_default_attributes(attributes)

    @property
    def default_attributes(self) -> list[Attribute]:
        return self._session.default_attributes

    def get_default_attributes(self) -> list[Attribute]:
        return self._session.default_attributes
