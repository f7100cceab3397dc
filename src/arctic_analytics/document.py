"""DocumentWriter — incremental, append-only JSON document writer.

The writer emits one JSON object across many writes::

    {
    	"sessionId" : "...",
    	"userId" : "...",
    	"events" : [
    		{ ...event... }
    		,
    		{ ...event... }
    	]
    }

It only tracks its own syntax state (header still open, first event
written, closed). Which calls are allowed when is decided by the session.
"""

from __future__ import annotations

import json
import logging

from arctic_analytics.storage import DocumentSink, DocumentStore
from arctic_analytics.types import JsonScalar

logger = logging.getLogger(__name__)

_HEADER_INDENT = "\t"
_SEPARATOR = "\t\t,"


class DocumentWriter:
    """Writes one session document through a DocumentSink.

    Use :meth:`open` to create the underlying sink. Every write is a
    whole line, so the bytes on disk are always a prefix of the final
    document.
    """

    def __init__(self, sink: DocumentSink, name: str = "") -> None:
        self._sink = sink
        self._name = name
        self._header_open = True
        self._in_events = False
        self._has_written_first_event = False
        self._event_count = 0
        self._closed = False
        self._write_line("{")

    @classmethod
    def open(cls, store: DocumentStore, name: str) -> DocumentWriter:
        """Create the document ``name`` in ``store``.

        Raises:
            SinkUnavailableError: If the store cannot create the sink.
        """
        from arctic_analytics import SinkUnavailableError

        try:
            sink = store.create(name)
        except OSError as e:
            raise SinkUnavailableError(f"Cannot create document '{name}': {e}") from e
        try:
            return cls(sink, name)
        except OSError as e:
            sink.close()
            raise SinkUnavailableError(f"Cannot write document '{name}': {e}") from e

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def event_count(self) -> int:
        return self._event_count

    @property
    def has_written_first_event(self) -> bool:
        return self._has_written_first_event

    def _write_line(self, text: str) -> None:
        self._sink.write(text + "\n")

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Document '{self._name}' is already closed")

    def write_header_field(self, key: str, value: JsonScalar) -> None:
        """Write one top-level key before the event list."""
        self._check_open()
        if not self._header_open:
            raise RuntimeError("Header fields must be written before the event list")
        self._write_line(f"{_HEADER_INDENT}{json.dumps(key)} : {json.dumps(value, ensure_ascii=False)},")

    def write_header_raw(self, key: str, fragment: str) -> None:
        """Write one top-level key whose value is an already rendered JSON fragment."""
        self._check_open()
        if not self._header_open:
            raise RuntimeError("Header fields must be written before the event list")
        self._write_line(f"{_HEADER_INDENT}{json.dumps(key)} : {fragment},")

    def begin_event_list(self) -> None:
        self._check_open()
        if not self._header_open:
            raise RuntimeError("Event list already started")
        self._write_line(f'{_HEADER_INDENT}"events" : [')
        self._header_open = False
        self._in_events = True

    def append_event(self, fragment: str) -> None:
        """Append one rendered event, preceded by a separator unless first."""
        self._check_open()
        if not self._in_events:
            raise RuntimeError("begin_event_list() must be called before appending events")
        # one write: a failed append must not leave a separator behind
        text = f"{_SEPARATOR}\n{fragment}" if self._has_written_first_event else fragment
        self._write_line(text)
        self._has_written_first_event = True
        self._event_count += 1

    def flush(self) -> None:
        self._check_open()
        self._sink.flush()

    def close(self) -> None:
        """Terminate the event list and the root object, flush, release the sink."""
        if self._closed:
            return
        try:
            if self._header_open:
                self.begin_event_list()
            self._write_line(f"{_HEADER_INDENT}]")
            self._write_line("}")
            self._sink.flush()
        finally:
            self._closed = True
            self._in_events = False
            self._sink.close()
        logger.debug("Document '%s' closed with %d events", self._name, self._event_count)
