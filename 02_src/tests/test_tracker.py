"""Tests for Tracker."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

from soundbot.tracker import Tracker


class TestTrackerTrack:
    """Tests for Tracker.track() method."""

    async def test_track_creates_event(self, tracker, storage):
        """Test that track() creates a TraceEvent."""
        await tracker.track(
            event_type="test_event",
            actor="test_actor",
            data={"key": "value"},
        )

        events = await storage.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "test_event"
        assert events[0].actor == "test_actor"
        assert events[0].data == {"key": "value"}
        assert events[0].id

    async def test_track_generates_timestamp(self, tracker, storage):
        before = datetime.now(timezone.utc)
        await tracker.track(event_type="test_event", actor="test_actor", data={})
        after = datetime.now(timezone.utc)

        events = await storage.get_trace_events()
        assert before <= events[0].timestamp <= after

    async def test_disabled_tracker_stores_nothing(self, storage):
        tracker = Tracker(storage, enabled=False)
        await tracker.track(event_type="test_event", actor="test_actor", data={})

        assert await storage.get_trace_events() == []

    async def test_storage_error_is_logged(self, caplog):
        """A failing trace write is logged and does not reach the caller."""
        storage = AsyncMock()
        storage.save_trace_event.side_effect = RuntimeError("disk full")
        tracker = Tracker(storage)

        await tracker.track(event_type="test_event", actor="test_actor", data={})

        assert "disk full" in caplog.text
