"""Tests for Diagnostic and the diagnostic sinks."""

from __future__ import annotations

import json
import logging

from arctic_analytics import Diagnostic, FileSink, LogSink, Outcome, StdoutSink


def _diagnostic(outcome=Outcome.NOT_ACTIVE, **kwargs):
    return Diagnostic(outcome=outcome, message="called before start_session. Ignoring.", **kwargs)


class TestDiagnostic:
    def test_to_dict(self):
        d = _diagnostic(operation="record_event", session_id="abc", metadata={"document": "abc.analytics"})
        data = d.to_dict()
        assert data["outcome"] == Outcome.NOT_ACTIVE.value
        assert data["level"] == "WARNING"
        assert data["operation"] == "record_event"
        assert data["session_id"] == "abc"
        assert data["metadata"] == {"document": "abc.analytics"}
        assert data["timestamp"].endswith("+00:00")

    def test_levels(self):
        assert Outcome.OK.level == logging.INFO
        assert Outcome.NOT_ACTIVE.level == logging.WARNING
        assert Outcome.INVALID_STATE_TRANSITION.level == logging.WARNING
        assert Outcome.SINK_UNAVAILABLE.level == logging.WARNING
        assert Outcome.CONFIG_MISSING.level == logging.ERROR
        assert Outcome.STORAGE_READ_FAILURE.level == logging.ERROR
        assert Outcome.SINK_WRITE_FAILURE.level == logging.ERROR


class TestLogSink:
    def test_logs_at_outcome_level(self, caplog):
        with caplog.at_level(logging.INFO, logger="arctic_analytics"):
            LogSink().emit(_diagnostic(operation="record_event"))
            LogSink().emit(_diagnostic(Outcome.CONFIG_MISSING))
        first, second = caplog.records
        assert first.levelno == logging.WARNING
        assert first.getMessage() == "record_event: called before start_session. Ignoring."
        assert second.levelno == logging.ERROR
        assert second.getMessage() == "called before start_session. Ignoring."

    def test_custom_logger(self, caplog):
        custom = logging.getLogger("game.analytics")
        with caplog.at_level(logging.WARNING, logger="game.analytics"):
            LogSink(custom).emit(_diagnostic())
        assert caplog.records[0].name == "game.analytics"


class TestJsonLineSinks:
    def test_stdout_sink(self, capsys):
        StdoutSink().emit(_diagnostic(operation="record_error"))
        line = capsys.readouterr().out
        assert line.endswith("\n")
        assert json.loads(line)["operation"] == "record_error"

    def test_file_sink_appends(self, tmp_path):
        path = tmp_path / "diagnostics.jsonl"
        sink = FileSink(path)
        sink.emit(_diagnostic(operation="a"))
        sink.emit(_diagnostic(operation="b"))
        lines = path.read_text().splitlines()
        assert [json.loads(line)["operation"] for line in lines] == ["a", "b"]
