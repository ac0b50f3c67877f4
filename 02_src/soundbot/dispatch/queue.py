"""Per-recipient ordered dispatch queue with echo-gated flow control.

The Send API does not guarantee that two messages sent back to back reach the
user in order. Each recipient therefore gets its own FIFO and at most one
message "in flight": a message is handed to the sender only once the echo of
the previous one has come back, or once the previous send is older than the
timeout.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Protocol

from ..config import DEFAULT_DISPATCH_TIMEOUT_MS
from ..logging_config import get_logger
from ..models import OutboundMessage
from ..sender import ISender
from ..tracker import ITracker

logger = get_logger(__name__)

DEFAULT_TIMEOUT_MS = DEFAULT_DISPATCH_TIMEOUT_MS

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class RecipientQueue:
    """Pending messages and gate state for one recipient."""

    pending: deque[OutboundMessage] = field(default_factory=deque)
    last_sent: float | None = None  # None/0 means no message in flight
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class IDispatchQueue(Protocol):
    """Ordered outbound delivery."""

    async def enqueue(self, recipient_id: str, message: OutboundMessage) -> None:
        """Append a message and send it right away if the gate is open."""
        ...

    async def on_echo_received(self, recipient_id: str) -> None:
        """Reopen the gate for a recipient and send the next message."""
        ...


class DispatchQueue:
    """Registry of per-recipient queues."""

    def __init__(
        self,
        sender: ISender,
        tracker: ITracker,
        timeout_ms: float = DEFAULT_TIMEOUT_MS,
        clock: Clock | None = None,
    ):
        self._sender = sender
        self._tracker = tracker
        self._timeout_ms = timeout_ms
        self._clock = clock or monotonic_ms
        self._queues: dict[str, RecipientQueue] = {}
        self._send_tasks: set[asyncio.Task] = set()
        self._sweep_task: asyncio.Task | None = None

    # Lifecycle
    async def start(self, sweep_interval: float = 0) -> None:
        """Start the timeout sweeper when sweep_interval > 0 (seconds)."""
        if sweep_interval > 0 and self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep(sweep_interval))

    async def stop(self) -> None:
        """Stop the sweeper and wait for sends already handed to the sender."""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        if self._send_tasks:
            await asyncio.gather(*self._send_tasks, return_exceptions=True)

    def reset(self) -> None:
        """Drop all queued messages and gate state."""
        self._queues.clear()

    # Operations
    async def enqueue(self, recipient_id: str, message: OutboundMessage) -> None:
        """Append a message and send it right away if the gate is open."""
        while True:
            queue = self._queues.get(recipient_id)
            if queue is None:
                queue = self._queues[recipient_id] = RecipientQueue()
            async with queue.lock:
                # The queue may have been dropped as idle while we waited.
                if self._queues.get(recipient_id) is not queue:
                    continue
                queue.pending.append(message)
                dispatched = self._try_send_head(queue)
                break

        await self._tracker.track(
            "message_enqueued",
            "dispatch_queue",
            {
                "recipient_id": recipient_id,
                "tag": message.tag.value,
                "dispatched": dispatched is not None,
            },
        )
        if dispatched:
            await self._track_dispatch(dispatched)

    async def on_echo_received(self, recipient_id: str) -> None:
        """Reopen the gate for a recipient and send the next message.

        The gate is reopened on any echo, even when nothing was in flight.
        """
        queue = self._queues.get(recipient_id)
        if queue is None:
            logger.debug("Echo for %s with no queue", recipient_id)
            return

        async with queue.lock:
            queue.last_sent = None
            dispatched = self._try_send_head(queue)
            self._discard_if_idle(recipient_id, queue)

        await self._tracker.track(
            "echo_received",
            "dispatch_queue",
            {"recipient_id": recipient_id, "remaining": len(queue.pending)},
        )
        if dispatched:
            await self._track_dispatch(dispatched)

    async def check(self, recipient_id: str) -> bool:
        """Send the head of the queue if the gate has opened. Returns True on send."""
        queue = self._queues.get(recipient_id)
        if queue is None:
            return False

        async with queue.lock:
            dispatched = self._try_send_head(queue)
            self._discard_if_idle(recipient_id, queue)

        if dispatched:
            logger.warning(
                "Gate released for %s without echo, sending next queued message",
                recipient_id,
                extra={"recipient_id": recipient_id},
            )
            await self._track_dispatch(dispatched)
            return True
        return False

    async def check_all(self) -> int:
        """Run check() for every known recipient. Returns the number of sends."""
        sent = 0
        for recipient_id in list(self._queues):
            if await self.check(recipient_id):
                sent += 1
        return sent

    # Introspection
    def pending(self, recipient_id: str) -> list[OutboundMessage]:
        queue = self._queues.get(recipient_id)
        return list(queue.pending) if queue else []

    def in_flight(self, recipient_id: str) -> bool:
        queue = self._queues.get(recipient_id)
        if queue is None:
            return False
        return not self._gate_open(queue)

    # Internals
    def _gate_open(self, queue: RecipientQueue) -> bool:
        if not queue.last_sent:
            return True
        return self._clock() - queue.last_sent >= self._timeout_ms

    def _try_send_head(self, queue: RecipientQueue) -> OutboundMessage | None:
        """Pop the head and hand it to the sender. Caller holds queue.lock."""
        if not queue.pending or not self._gate_open(queue):
            return None

        message = queue.pending.popleft()
        queue.last_sent = self._clock()

        task = asyncio.create_task(self._deliver(message))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)
        return message

    def _discard_if_idle(self, recipient_id: str, queue: RecipientQueue) -> None:
        """Drop a recipient with nothing pending or in flight. Caller holds queue.lock."""
        if not queue.pending and self._gate_open(queue):
            if self._queues.get(recipient_id) is queue:
                del self._queues[recipient_id]

    async def _track_dispatch(self, message: OutboundMessage) -> None:
        await self._tracker.track(
            "message_dispatched",
            "dispatch_queue",
            {
                "recipient_id": message.recipient_id,
                "tag": message.tag.value,
                "text": (message.text_content or "")[:100],
            },
        )

    async def _deliver(self, message: OutboundMessage) -> None:
        """Background send. Failures are logged; they do not advance the queue."""
        try:
            result = await self._sender.send(message)
        except Exception as e:
            logger.error(
                "Sender raised for %s: %s",
                message.recipient_id,
                e,
                exc_info=True,
                extra={"recipient_id": message.recipient_id},
            )
            await self._tracker.track(
                "send_failed",
                "dispatch_queue",
                {"recipient_id": message.recipient_id, "reason": str(e)},
            )
            return

        if result.success:
            await self._tracker.track(
                "message_sent",
                "dispatch_queue",
                {"recipient_id": result.recipient_id, "message_id": result.message_id},
            )
        else:
            logger.error(
                "Send failed for %s: %s",
                message.recipient_id,
                result.reason,
                extra={"recipient_id": message.recipient_id},
            )
            await self._tracker.track(
                "send_failed",
                "dispatch_queue",
                {"recipient_id": message.recipient_id, "reason": result.reason},
            )

    async def _sweep(self, interval: float) -> None:
        """Background loop releasing gates whose echo never arrived."""
        while True:
            try:
                await asyncio.sleep(interval)
                await self.check_all()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Dispatch sweep error: %s", e, exc_info=True)
