"""Tests for Tracker."""

from datetime import datetime, timezone

import pytest

from collab.tracker import NullTracker


class TestTrackerTrack:
    """Tests for Tracker.track() method."""

    @pytest.mark.asyncio
    async def test_track_creates_event(self, tracker, storage):
        """Test that track() creates a TraceEvent."""
        await tracker.track(
            event_type="round_completed",
            actor="orchestrator",
            data={"round": 1},
        )

        events = await storage.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "round_completed"
        assert events[0].actor == "orchestrator"
        assert events[0].data == {"round": 1}

    @pytest.mark.asyncio
    async def test_track_generates_id(self, tracker, storage):
        """Test that track() generates an ID."""
        await tracker.track(event_type="test_event", actor="test_actor", data={})

        events = await storage.get_trace_events()
        assert events[0].id

    @pytest.mark.asyncio
    async def test_track_generates_timestamp(self, tracker, storage):
        """Test that track() stamps the current time."""
        before = datetime.now(timezone.utc)
        await tracker.track(event_type="test_event", actor="test_actor", data={})
        after = datetime.now(timezone.utc)

        events = await storage.get_trace_events()
        assert before <= events[0].timestamp <= after

    @pytest.mark.asyncio
    async def test_track_multiple_events(self, tracker, storage):
        """Test tracking several events."""
        for i in range(3):
            await tracker.track(event_type=f"event{i}", actor="a", data={"i": i})

        events = await storage.get_trace_events()
        assert len(events) == 3


class TestNullTracker:
    """Tests for NullTracker."""

    @pytest.mark.asyncio
    async def test_track_is_noop(self):
        """Test that nothing is recorded or raised."""
        assert await NullTracker().track("x", "y", {}) is None
