"""
Test suite for the WebSocket import progress feed.

Job snapshots are scripted by patching the snapshot loader, so the feed's
event sequence can be checked without a running worker.
"""

import json
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from customer_sync.api.deps import get_settings_dependency
from customer_sync.api.routers import import_stream
from customer_sync.boundary.db import get_async_session_factory
from customer_sync.configs import Settings
from customer_sync.configs.queue import FeedSettings
from customer_sync.core.exceptions import ImportJobNotFoundError
from customer_sync.main import create_app


def snapshot(status: str = "running", processed: int = 0, percent: float = 0.0) -> dict:
    return {"status": status, "phase": "processing", "processed": processed, "progress_percent": percent}


@pytest.fixture
def feed_client():
    app = create_app()
    app.dependency_overrides[get_settings_dependency] = lambda: Settings(
        feed=FeedSettings(poll_interval_seconds=0.01, max_seconds=0.2)
    )
    app.dependency_overrides[get_async_session_factory] = lambda: None
    return TestClient(app)


def script_snapshots(monkeypatch, items):
    """Make the feed read the given snapshots (or raise given exceptions) in order."""
    remaining = list(items)

    async def fake_load(session_factory, job_id):
        item = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(import_stream, "_load_snapshot", fake_load)


def receive_all(websocket) -> list[dict]:
    events = []
    while True:
        message = websocket.receive()
        if message["type"] == "websocket.close":
            return events
        events.append(json.loads(message["text"]))


class TestProgressFeed:
    def test_streams_changes_until_finished(self, feed_client, monkeypatch):
        """Test unchanged snapshots are not repeated and a terminal one ends the feed."""
        # Arrange
        script_snapshots(monkeypatch, [
            snapshot(processed=0),
            snapshot(processed=0),
            snapshot(processed=5, percent=50.0),
            snapshot(status="completed", processed=10, percent=100.0),
        ])
        job_id = uuid4()

        # Act
        with feed_client.websocket_connect(f"/ws/imports/{job_id}/progress") as websocket:
            events = receive_all(websocket)

        # Assert
        assert [e["event"] for e in events] == ["connected", "progress", "progress", "finished"]
        assert events[0]["data"] == {"job_id": str(job_id)}
        assert events[2]["data"]["processed"] == 5
        assert events[3]["data"]["progress_percent"] == 100.0

    def test_unknown_job_sends_error(self, feed_client, monkeypatch):
        job_id = uuid4()
        script_snapshots(monkeypatch, [ImportJobNotFoundError(str(job_id))])

        with feed_client.websocket_connect(f"/ws/imports/{job_id}/progress") as websocket:
            events = receive_all(websocket)

        assert [e["event"] for e in events] == ["connected", "error"]
        assert "not found" in events[1]["data"]["message"].lower()

    def test_feed_times_out(self, feed_client, monkeypatch):
        script_snapshots(monkeypatch, [snapshot(processed=1)])

        with feed_client.websocket_connect(f"/ws/imports/{uuid4()}/progress") as websocket:
            events = receive_all(websocket)

        assert [e["event"] for e in events] == ["connected", "progress", "timeout"]
        assert events[-1]["data"]["max_seconds"] == 0.2
