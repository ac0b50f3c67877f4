"""Tests for DispatchQueue."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from soundbot.dispatch import DispatchQueue
from soundbot.models import OutboundMessage


def text(recipient_id: str, body: str) -> OutboundMessage:
    return OutboundMessage.text(recipient_id, body)


class TestDispatchQueueEnqueue:
    """Tests for DispatchQueue.enqueue()."""

    async def test_enqueue_sends_immediately_when_idle(self, dispatch_queue, sender, settle):
        """An idle recipient gets the message right away."""
        await dispatch_queue.enqueue("user1", text("user1", "hello"))
        await settle()

        assert sender.texts() == ["hello"]
        assert dispatch_queue.pending("user1") == []
        assert dispatch_queue.in_flight("user1")

    async def test_enqueue_holds_messages_while_in_flight(
        self, dispatch_queue, sender, settle
    ):
        """Only one message is handed to the sender until the echo arrives."""
        for body in ("one", "two", "three"):
            await dispatch_queue.enqueue("user1", text("user1", body))
        await settle()

        assert sender.texts() == ["one"]
        assert [m.text_content for m in dispatch_queue.pending("user1")] == ["two", "three"]

    async def test_concurrent_enqueues_send_only_one(self, dispatch_queue, sender, settle):
        """Concurrent enqueues on an idle recipient do not double-send."""
        await asyncio.gather(
            *[dispatch_queue.enqueue("user1", text("user1", str(i))) for i in range(10)]
        )
        await settle()

        assert len(sender.sent) == 1
        assert len(dispatch_queue.pending("user1")) == 9

    async def test_recipients_are_independent(self, dispatch_queue, sender, settle):
        """A busy recipient does not block another one."""
        await dispatch_queue.enqueue("user1", text("user1", "a1"))
        await dispatch_queue.enqueue("user1", text("user1", "a2"))
        await dispatch_queue.enqueue("user2", text("user2", "b1"))
        await settle()

        assert sender.texts() == ["a1", "b1"]

    async def test_enqueue_tracks_events(self, dispatch_queue, storage, settle):
        """Enqueue and dispatch are recorded as trace events."""
        await dispatch_queue.enqueue("user1", text("user1", "hello"))
        await settle()

        events = await storage.get_trace_events(actor="dispatch_queue")
        event_types = {e.event_type for e in events}
        assert "message_enqueued" in event_types
        assert "message_dispatched" in event_types
        assert "message_sent" in event_types


class TestDispatchQueueEcho:
    """Tests for DispatchQueue.on_echo_received()."""

    async def test_echoes_release_messages_in_order(self, dispatch_queue, sender, settle):
        """Each echo releases exactly the next message, preserving FIFO order."""
        for body in ("one", "two", "three"):
            await dispatch_queue.enqueue("user1", text("user1", body))
        await settle()

        await dispatch_queue.on_echo_received("user1")
        await settle()
        assert sender.texts() == ["one", "two"]

        await dispatch_queue.on_echo_received("user1")
        await settle()
        assert sender.texts() == ["one", "two", "three"]

        await dispatch_queue.on_echo_received("user1")
        await settle()
        assert sender.texts() == ["one", "two", "three"]
        assert not dispatch_queue.in_flight("user1")

    async def test_echo_before_next_enqueue_keeps_order(self, dispatch_queue, sender, settle):
        """Interleaved enqueue/echo sequences are delivered in enqueue order."""
        bodies = [f"m{i}" for i in range(6)]
        for body in bodies:
            await dispatch_queue.enqueue("user1", text("user1", body))
            await settle()
            await dispatch_queue.on_echo_received("user1")
            await settle()

        assert sender.texts() == bodies

    async def test_echo_for_unknown_recipient_is_noop(self, dispatch_queue, sender):
        """An echo for a recipient with no queue does nothing."""
        await dispatch_queue.on_echo_received("nobody")

        assert sender.sent == []
        assert not dispatch_queue.in_flight("nobody")

    async def test_unsolicited_echo_reopens_gate(self, dispatch_queue, sender, settle):
        """Any echo reopens the gate, even one that does not match the in-flight send."""
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await settle()
        await dispatch_queue.on_echo_received("user1")
        await dispatch_queue.on_echo_received("user1")

        await dispatch_queue.enqueue("user1", text("user1", "two"))
        await dispatch_queue.on_echo_received("user1")  # stray echo
        await dispatch_queue.enqueue("user1", text("user1", "three"))
        await settle()

        assert sender.texts() == ["one", "two", "three"]


class TestDispatchQueueTimeout:
    """Tests for the in-flight timeout."""

    async def test_gate_stays_closed_before_timeout(
        self, dispatch_queue, sender, clock, settle
    ):
        """Nothing is released one millisecond before the timeout."""
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        clock.advance(9_999)
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        await settle()

        assert sender.texts() == ["one"]
        assert await dispatch_queue.check("user1") is False

    async def test_enqueue_after_timeout_sends_next(
        self, dispatch_queue, sender, clock, settle
    ):
        """Once the timeout elapses the next enqueue dispatches the head."""
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        clock.advance(10_000)
        await dispatch_queue.enqueue("user1", text("user1", "three"))
        await settle()

        assert sender.texts() == ["one", "two"]
        assert [m.text_content for m in dispatch_queue.pending("user1")] == ["three"]

    async def test_check_after_timeout_sends_next(
        self, dispatch_queue, sender, clock, settle
    ):
        """A queue-check releases a timed-out gate without a new enqueue."""
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        clock.advance(10_000)

        assert await dispatch_queue.check("user1") is True
        await settle()
        assert sender.texts() == ["one", "two"]
        assert dispatch_queue.in_flight("user1")

    async def test_check_all_covers_every_recipient(
        self, dispatch_queue, sender, clock, settle
    ):
        """check_all() releases every timed-out recipient."""
        for user in ("user1", "user2"):
            await dispatch_queue.enqueue(user, text(user, f"{user}-1"))
            await dispatch_queue.enqueue(user, text(user, f"{user}-2"))
        clock.advance(10_001)

        assert await dispatch_queue.check_all() == 2
        await settle()
        assert sorted(sender.texts()) == ["user1-1", "user1-2", "user2-1", "user2-2"]

    async def test_sweeper_releases_timed_out_gate(self, sender, tracker, clock):
        """The background sweeper releases a stalled gate on its own."""
        queue = DispatchQueue(sender=sender, tracker=tracker, clock=clock)
        await queue.start(sweep_interval=0.01)
        try:
            await queue.enqueue("user1", text("user1", "one"))
            await queue.enqueue("user1", text("user1", "two"))
            clock.advance(10_000)

            for _ in range(100):
                if len(sender.sent) == 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            await queue.stop()

        assert sender.texts() == ["one", "two"]


class TestDispatchQueueFailures:
    """Tests for sender failures."""

    async def test_failed_send_keeps_gate_closed(
        self, dispatch_queue, sender, storage, settle
    ):
        """A failed send is not retried and does not advance the queue."""
        sender.fail_with = "rate limited"
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        await settle()

        assert sender.texts() == ["one"]
        assert dispatch_queue.in_flight("user1")

        events = await storage.get_trace_events(event_types=["send_failed"])
        assert len(events) == 1
        assert events[0].data["reason"] == "rate limited"

    async def test_sender_exception_is_logged_not_raised(
        self, dispatch_queue, sender, storage, settle, caplog
    ):
        """An exception inside the sender is logged and tracked."""
        sender.raise_with = RuntimeError("connection reset")
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await settle()

        assert "connection reset" in caplog.text
        events = await storage.get_trace_events(event_types=["send_failed"])
        assert len(events) == 1

    async def test_timeout_recovers_after_failure(
        self, dispatch_queue, sender, clock, settle
    ):
        """After a failed send the timeout is what unblocks the recipient."""
        sender.fail_with = "boom"
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        await settle()

        sender.fail_with = None
        clock.advance(10_000)
        await dispatch_queue.check("user1")
        await settle()

        assert sender.texts() == ["one", "two"]


class TestDispatchQueueLifecycle:
    """Tests for reset() and stop()."""

    async def test_reset_drops_queues(self, dispatch_queue, sender, settle):
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        await settle()

        dispatch_queue.reset()

        assert dispatch_queue.pending("user1") == []
        assert not dispatch_queue.in_flight("user1")

    async def test_stop_waits_for_sends(self, sender, tracker):
        queue = DispatchQueue(sender=sender, tracker=tracker)
        await queue.enqueue("user1", text("user1", "one"))
        await queue.stop()

        assert sender.texts() == ["one"]
        assert not queue._send_tasks


class TestDispatchQueueIdleRecipients:
    """Idle recipients are forgotten and recreated on demand."""

    async def test_recipient_dropped_after_last_echo(self, dispatch_queue, sender, settle):
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        await settle()

        await dispatch_queue.on_echo_received("user1")
        assert "user1" in dispatch_queue._queues

        await dispatch_queue.on_echo_received("user1")
        assert "user1" not in dispatch_queue._queues

    async def test_check_drops_timed_out_idle_recipient(self, dispatch_queue, clock, settle):
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await settle()
        clock.advance(10_000)

        assert await dispatch_queue.check_all() == 0
        assert "user1" not in dispatch_queue._queues

    async def test_enqueue_after_drop_sends_immediately(self, dispatch_queue, sender, settle):
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await settle()
        await dispatch_queue.on_echo_received("user1")

        await dispatch_queue.enqueue("user1", text("user1", "two"))
        await dispatch_queue.enqueue("user1", text("user1", "three"))
        await settle()

        assert sender.texts() == ["one", "two"]
        assert dispatch_queue.in_flight("user1")

    async def test_enqueue_waiting_on_dropped_queue_keeps_one_in_flight(
        self, dispatch_queue, sender, settle
    ):
        """An enqueue racing an echo that drops the queue still respects the gate."""
        await dispatch_queue.enqueue("user1", text("user1", "one"))
        await settle()

        old_queue = dispatch_queue._queues["user1"]
        await old_queue.lock.acquire()
        waiting = asyncio.create_task(dispatch_queue.enqueue("user1", text("user1", "late")))
        await asyncio.sleep(0)

        # The echo path drops the idle queue while the enqueue waits on its lock.
        old_queue.last_sent = None
        del dispatch_queue._queues["user1"]
        await dispatch_queue.enqueue("user1", text("user1", "two"))
        old_queue.lock.release()
        await waiting
        await settle()

        assert sender.texts() == ["one", "two"]
        assert [m.text_content for m in dispatch_queue.pending("user1")] == ["late"]


class TestDispatchQueueTracking:
    """Trace data recorded by enqueue()."""

    async def test_dispatched_flag_set_when_older_head_goes_out(self, sender, clock):
        tracker = AsyncMock()
        queue = DispatchQueue(sender=sender, tracker=tracker, clock=clock)
        await queue.enqueue("user1", text("user1", "one"))
        await queue.enqueue("user1", text("user1", "two"))
        clock.advance(10_000)
        await queue.enqueue("user1", text("user1", "three"))
        await queue.stop()

        enqueued = [
            c.args[2]["dispatched"]
            for c in tracker.track.call_args_list
            if c.args[0] == "message_enqueued"
        ]
        assert enqueued == [True, False, True]
        assert sender.texts() == ["one", "two"]
