"""Shared fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from fakes import SECRET, SERVER, USER_ID, CollectingSink, RecordingUploader, SteppingClock

from arctic_analytics import AnalyticsProvider, InlineDispatcher, MemoryConfigSource, RecordCounter


@pytest.fixture
def uploader():
    return RecordingUploader()


@pytest.fixture
def sink():
    return CollectingSink()


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def dispatcher():
    with InlineDispatcher() as d:
        yield d


@pytest.fixture
def analytics_dir(tmp_path) -> Path:
    return tmp_path / "Analytics"


@pytest.fixture
def provider(analytics_dir, uploader, sink, clock, dispatcher):
    p = AnalyticsProvider(
        analytics_dir,
        MemoryConfigSource.for_upload(SERVER, SECRET),
        uploader,
        dispatcher=dispatcher,
        counter=RecordCounter(),
        clock=clock,
        sinks=[sink],
        user_id=USER_ID,
    )
    yield p
    p.close()


@pytest.fixture
def read_document(analytics_dir):
    """Parse the finished document of a session id."""

    def _read(session_id):
        return json.loads((analytics_dir / f"{session_id}.analytics").read_text(encoding="utf-8"))

    return _read
