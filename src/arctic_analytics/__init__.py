"""arctic-analytics: session analytics recorder with signed uploads.

Records usage events for one session at a time into an incrementally
written JSON document and, when the session ends, uploads the document
to a collector authenticated by an HMAC-SHA256 of its exact bytes.
"""

from __future__ import annotations

__version__ = "0.1.0"


class AnalyticsError(Exception):
    """Base class for arctic-analytics errors."""


class AnalyticsConfigError(AnalyticsError):
    """Raised when a settings file is missing, malformed, or invalid."""


class SinkUnavailableError(AnalyticsError):
    """Raised when a session document cannot be created or written."""


from arctic_analytics.attributes import Attribute  # noqa: E402
from arctic_analytics.config import MemoryConfigSource, load_settings  # noqa: E402
from arctic_analytics.diagnostics import Diagnostic, DiagnosticSink, FileSink, LogSink, StdoutSink  # noqa: E402
from arctic_analytics.document import DocumentWriter  # noqa: E402
from arctic_analytics.events import PROCESS_RECORD_COUNTER, EventKind, EventRecord, RecordCounter  # noqa: E402
from arctic_analytics.pipeline import UploadOutcome, UploadPipeline, compute_signature, verify_signature  # noqa: E402
from arctic_analytics.provider import AnalyticsProvider  # noqa: E402
from arctic_analytics.recorder import EventRecorder  # noqa: E402
from arctic_analytics.session import SessionHeader, SessionState  # noqa: E402
from arctic_analytics.storage import DirectoryStore, MemoryStore  # noqa: E402
from arctic_analytics.transport import BackgroundDispatcher, HTTPUploader, InlineDispatcher, UploadFailure  # noqa: E402
from arctic_analytics.types import ConfigSource, Outcome, SessionStatus, Uploader  # noqa: E402

__all__ = [
    "AnalyticsConfigError",
    "AnalyticsError",
    "AnalyticsProvider",
    "Attribute",
    "BackgroundDispatcher",
    "ConfigSource",
    "Diagnostic",
    "DiagnosticSink",
    "DirectoryStore",
    "DocumentWriter",
    "EventKind",
    "EventRecord",
    "EventRecorder",
    "FileSink",
    "HTTPUploader",
    "InlineDispatcher",
    "LogSink",
    "MemoryConfigSource",
    "MemoryStore",
    "Outcome",
    "PROCESS_RECORD_COUNTER",
    "RecordCounter",
    "SessionHeader",
    "SessionState",
    "SessionStatus",
    "SinkUnavailableError",
    "StdoutSink",
    "UploadFailure",
    "UploadOutcome",
    "UploadPipeline",
    "Uploader",
    "compute_signature",
    "load_settings",
    "verify_signature",
    "__version__",
]
