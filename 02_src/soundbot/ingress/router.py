"""EventRouter: hands classified webhook events to the right component."""

from typing import Protocol

from ..dispatch import IDispatchQueue
from ..flow import IConversationFlow
from ..logging_config import get_logger
from ..models import EventKind, InboundEvent
from ..tracker import ITracker

logger = get_logger(__name__)


class IEventRouter(Protocol):
    """Routes one inbound event."""

    async def handle(self, event: InboundEvent) -> None:
        """Act on a classified event. State Store errors propagate."""
        ...


class EventRouter:
    """Echoes go to the dispatch queue; user input goes to the flow."""

    def __init__(
        self,
        dispatch_queue: IDispatchQueue,
        flow: IConversationFlow,
        tracker: ITracker,
    ):
        self._queue = dispatch_queue
        self._flow = flow
        self._tracker = tracker

    async def handle(self, event: InboundEvent) -> None:
        """Act on a classified event. State Store errors propagate."""
        logger.info(
            "Received %s from %s to %s at %s",
            event.kind.value,
            event.sender_id,
            event.recipient_id,
            event.timestamp,
            extra={"sender_id": event.sender_id, "event_kind": event.kind.value},
        )
        await self._tracker.track(
            "event_received",
            "event_router",
            {
                "kind": event.kind.value,
                "sender_id": event.sender_id,
                "recipient_id": event.recipient_id,
            },
        )

        if event.kind == EventKind.ECHO:
            # The page is the sender of an echo; the user is its recipient.
            logger.debug(
                "Echo for message %s (app %s, metadata %s)",
                event.message_id,
                event.app_id,
                event.metadata,
            )
            await self._queue.on_echo_received(event.recipient_id)

        elif event.kind == EventKind.QUICK_REPLY:
            logger.info(
                "Quick reply for message %s with payload %s",
                event.message_id,
                event.quick_reply_payload,
            )

        elif event.kind in (EventKind.TEXT_MESSAGE, EventKind.ATTACHMENT):
            await self._flow.next_action(event.sender_id)

        elif event.kind == EventKind.POSTBACK:
            await self._flow.handle_postback(event.sender_id, event.postback_payload or "")

        else:
            logger.warning("Webhook received unknown messaging event: %s", event.raw)
