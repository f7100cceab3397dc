"""Tests for the incremental DocumentWriter."""

from __future__ import annotations

import json

import pytest

from arctic_analytics import SinkUnavailableError
from arctic_analytics.attributes import Attribute
from arctic_analytics.document import DocumentWriter
from arctic_analytics.events import EventRecord
from arctic_analytics.storage import DirectoryStore, MemoryStore


def _event(message: str) -> str:
    return EventRecord.error(message, [Attribute("n", message)]).to_fragment()


def _writer(store: MemoryStore, name: str = "doc.analytics") -> DocumentWriter:
    writer = DocumentWriter.open(store, name)
    writer.write_header_field("sessionId", "abc")
    writer.write_header_field("userId", "u1")
    writer.begin_event_list()
    return writer


class TestDocumentWriter:
    def test_empty_event_list_is_valid(self):
        store = MemoryStore()
        writer = _writer(store)
        writer.close()
        data = json.loads(store.read_text("doc.analytics"))
        assert data == {"sessionId": "abc", "userId": "u1", "events": []}

    def test_events_in_call_order(self):
        store = MemoryStore()
        writer = _writer(store)
        for message in ("one", "two", "three"):
            writer.append_event(_event(message))
        writer.close()
        data = json.loads(store.read_text("doc.analytics"))
        assert [e["error"] for e in data["events"]] == ["one", "two", "three"]
        assert writer.event_count == 3

    def test_separator_only_between_events(self):
        store = MemoryStore()
        writer = _writer(store)
        assert writer.has_written_first_event is False
        writer.append_event(_event("one"))
        assert writer.has_written_first_event is True
        writer.append_event(_event("two"))
        writer.close()
        assert store.read_text("doc.analytics").count("\t\t,\n") == 1

    def test_numeric_header_field_unquoted(self):
        store = MemoryStore()
        writer = DocumentWriter.open(store, "doc.analytics")
        writer.write_header_field("age", 30)
        writer.close()
        text = store.read_text("doc.analytics")
        assert '\t"age" : 30,' in text
        assert json.loads(text)["age"] == 30

    def test_raw_header_fragment(self):
        store = MemoryStore()
        writer = DocumentWriter.open(store, "doc.analytics")
        writer.write_header_raw("attributes", "[ " + Attribute("mode", "coop").to_fragment() + " ]")
        writer.close()
        assert json.loads(store.read_text("doc.analytics"))["attributes"] == [{"name": "mode", "value": "coop"}]

    def test_close_without_event_list_still_valid(self):
        store = MemoryStore()
        writer = DocumentWriter.open(store, "doc.analytics")
        writer.write_header_field("sessionId", "abc")
        writer.close()
        assert json.loads(store.read_text("doc.analytics")) == {"sessionId": "abc", "events": []}

    def test_flushed_prefix_visible_before_close(self):
        store = MemoryStore()
        writer = _writer(store)
        writer.append_event(_event("one"))
        writer.flush()
        partial = store.read_text("doc.analytics")
        assert partial.startswith("{\n")
        assert '"error" : "one"' in partial
        writer.append_event(_event("two"))
        writer.close()
        assert store.read_text("doc.analytics").startswith(partial)

    def test_close_is_idempotent(self):
        store = MemoryStore()
        writer = _writer(store)
        writer.close()
        writer.close()
        assert writer.closed is True

    def test_append_after_close_raises(self):
        writer = _writer(MemoryStore())
        writer.close()
        with pytest.raises(RuntimeError, match="already closed"):
            writer.append_event(_event("late"))

    def test_append_before_event_list_raises(self):
        writer = DocumentWriter.open(MemoryStore(), "doc.analytics")
        with pytest.raises(RuntimeError, match="begin_event_list"):
            writer.append_event(_event("early"))

    def test_header_after_event_list_raises(self):
        writer = _writer(MemoryStore())
        with pytest.raises(RuntimeError, match="before the event list"):
            writer.write_header_field("late", "x")

    def test_open_existing_name_is_sink_unavailable(self):
        store = MemoryStore()
        _writer(store).close()
        with pytest.raises(SinkUnavailableError):
            DocumentWriter.open(store, "doc.analytics")

    def test_open_in_unusable_directory_is_sink_unavailable(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("occupied")
        with pytest.raises(SinkUnavailableError):
            DocumentWriter.open(DirectoryStore(blocker), "doc.analytics")

    def test_file_document_bytes_are_stable(self, tmp_path):
        store = DirectoryStore(tmp_path)
        writer = _writer(store)
        writer.append_event(_event("ünïcode"))
        writer.close()
        raw = (tmp_path / "doc.analytics").read_bytes()
        assert store.read_bytes("doc.analytics") == raw
        assert b"\r\n" not in raw
        assert json.loads(raw.decode("utf-8"))["events"][0]["error"] == "ünïcode"

    def test_failed_append_leaves_document_valid(self):
        store = MemoryStore()
        writer = _writer(store)
        writer.append_event(_event("one"))

        sink = writer._sink
        real_write = sink.write

        def full_disk(text):
            raise OSError(28, "No space left on device")

        sink.write = full_disk
        with pytest.raises(OSError):
            writer.append_event(_event("lost"))
        sink.write = real_write

        writer.append_event(_event("three"))
        writer.close()
        events = json.loads(store.read_text("doc.analytics"))["events"]
        assert [e["error"] for e in events] == ["one", "three"]
        assert writer.event_count == 2
