"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from soundbot.config import Settings  # noqa: E402
from soundbot.models import OutboundMessage, SendResult  # noqa: E402

SERVER_URL = "https://bot.example.com"


class FakeClock:
    """Millisecond clock advanced by hand. Starts above zero (0 reads as idle)."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeSender:
    """Records every message handed to it."""

    def __init__(self):
        self.sent: list[OutboundMessage] = []
        self.fail_with: str | None = None
        self.raise_with: Exception | None = None

    async def send(self, message: OutboundMessage) -> SendResult:
        self.sent.append(message)
        if self.raise_with is not None:
            raise self.raise_with
        if self.fail_with is not None:
            return SendResult(
                success=False, recipient_id=message.recipient_id, reason=self.fail_with
            )
        return SendResult(
            success=True,
            recipient_id=message.recipient_id,
            message_id=f"mid.{len(self.sent)}",
        )

    def texts(self) -> list[str | None]:
        return [m.text_content for m in self.sent]


class RecordingQueue:
    """Stands in for DispatchQueue; keeps enqueued messages in order."""

    def __init__(self, log: list | None = None):
        self.enqueued: list[OutboundMessage] = []
        self.echoes: list[str] = []
        self._log = log

    async def enqueue(self, recipient_id: str, message: OutboundMessage) -> None:
        self.enqueued.append(message)
        if self._log is not None:
            self._log.append(("enqueue", message))

    async def on_echo_received(self, recipient_id: str) -> None:
        self.echoes.append(recipient_id)


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from soundbot.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker backed by the in-memory storage."""
    from soundbot.tracker import Tracker

    return Tracker(storage=storage)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sender():
    return FakeSender()


@pytest_asyncio.fixture
async def dispatch_queue(sender, tracker, clock):
    """Create DispatchQueue with a fake sender and a manual clock."""
    from soundbot.dispatch import DispatchQueue

    queue = DispatchQueue(sender=sender, tracker=tracker, timeout_ms=10_000, clock=clock)
    yield queue
    await queue.stop()


@pytest.fixture
def settle(dispatch_queue):
    """Wait until every send handed to the sender has finished."""

    async def _settle():
        while dispatch_queue._send_tasks:
            await asyncio.gather(*list(dispatch_queue._send_tasks))

    return _settle


@pytest.fixture
def recording_queue():
    return RecordingQueue()


@pytest.fixture
def flow(storage, recording_queue, tracker):
    """ConversationFlow wired to a recording queue."""
    from soundbot.flow import ConversationFlow

    return ConversationFlow(
        state_store=storage,
        dispatch_queue=recording_queue,
        tracker=tracker,
        server_url=SERVER_URL,
    )


@pytest.fixture
def settings(tmp_path):
    """Complete settings with the sweeper disabled."""
    static_dir = tmp_path / "public"
    static_dir.mkdir()
    (static_dir / "city_hum.mp3").write_bytes(b"ID3fake")

    return Settings(
        app_secret="app-secret",
        validation_token="verify-me",
        page_access_token="page-token",
        server_url=SERVER_URL,
        dispatch_sweep_interval=0,
        static_dir=static_dir,
        db_path=":memory:",
    )
