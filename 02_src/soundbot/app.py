"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .config import Settings, resolve_db_path
from .dispatch import DispatchQueue
from .dispatch.queue import Clock
from .flow import ConversationFlow
from .ingress import EventRouter
from .logging_config import get_logger
from .sender import ISender, SendAPIClient
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Clear stored answers, traces and queues."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: Settings | None = None,
        db_path: str | None = None,
        sender: ISender | None = None,
        clock: Clock | None = None,
    ):
        self._settings = settings or Settings.from_env()
        self._db_path = (
            resolve_db_path(db_path) if db_path is not None else self._settings.db_path
        )
        self._injected_sender = sender
        self._clock = clock

        # Components (initialized in start())
        self._storage: IStorage | None = None
        self._tracker: ITracker | None = None
        self._sender: ISender | None = None
        self._dispatch_queue: DispatchQueue | None = None
        self._flow: ConversationFlow | None = None
        self._router: EventRouter | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        self._settings.validate()

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. Sender (no internal dependencies)
        self._sender = self._injected_sender or SendAPIClient(
            page_access_token=self._settings.page_access_token,
            api_url=self._settings.send_api_url,
        )
        logger.info("Sender initialized")

        # 4. DispatchQueue (depends on Sender, Tracker)
        self._dispatch_queue = DispatchQueue(
            sender=self._sender,
            tracker=self._tracker,
            timeout_ms=self._settings.dispatch_timeout_ms,
            clock=self._clock,
        )
        await self._dispatch_queue.start(self._settings.dispatch_sweep_interval)
        logger.info(
            "DispatchQueue started (timeout %sms)", self._settings.dispatch_timeout_ms
        )

        # 5. ConversationFlow (depends on Storage, DispatchQueue, Tracker)
        self._flow = ConversationFlow(
            state_store=self._storage,
            dispatch_queue=self._dispatch_queue,
            tracker=self._tracker,
            server_url=self._settings.server_url,
        )

        # 6. EventRouter (depends on DispatchQueue, ConversationFlow)
        self._router = EventRouter(
            dispatch_queue=self._dispatch_queue,
            flow=self._flow,
            tracker=self._tracker,
        )
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._dispatch_queue:
            await self._dispatch_queue.stop()
            logger.info("DispatchQueue stopped")
        if isinstance(self._sender, SendAPIClient):
            await self._sender.close()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Clear stored answers, traces and queues."""
        if self._dispatch_queue:
            self._dispatch_queue.reset()
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def dispatch_queue(self) -> DispatchQueue:
        """Get dispatch queue instance."""
        if not self._dispatch_queue:
            raise RuntimeError("Application not started")
        return self._dispatch_queue

    @property
    def flow(self) -> ConversationFlow:
        """Get conversation flow instance."""
        if not self._flow:
            raise RuntimeError("Application not started")
        return self._flow

    @property
    def router(self) -> EventRouter:
        """Get event router instance."""
        if not self._router:
            raise RuntimeError("Application not started")
        return self._router
