"""ConversationFlow: applies decisions to the state store and dispatch queue."""

from typing import Protocol

from ..dispatch import IDispatchQueue
from ..logging_config import get_logger
from ..models.conversation import RESET_VALUE
from ..storage import IStateStore
from ..tracker import ITracker
from .engine import Turn, decide, parse_postback

logger = get_logger(__name__)


class IConversationFlow(Protocol):
    """Drives one user through the mood/location questions."""

    async def next_action(self, user_id: str) -> Turn:
        """Re-evaluate the user's state and enqueue the resulting messages."""
        ...

    async def handle_postback(self, user_id: str, payload: str) -> Turn | None:
        """Store a button answer, then re-evaluate."""
        ...


class ConversationFlow:
    """Reads answers, enqueues the turn's messages, then clears completed flows."""

    def __init__(
        self,
        state_store: IStateStore,
        dispatch_queue: IDispatchQueue,
        tracker: ITracker,
        server_url: str,
    ):
        self._store = state_store
        self._queue = dispatch_queue
        self._tracker = tracker
        self._server_url = server_url

    async def next_action(self, user_id: str) -> Turn:
        """Re-evaluate the user's state and enqueue the resulting messages."""
        state = await self._store.get_user_state(user_id)
        turn = decide(state, self._server_url)

        for message in turn.messages:
            await self._queue.enqueue(user_id, message)

        if turn.reset_state:
            await self._store.reset_user_state(user_id)
            logger.info(
                "Completed flow for %s (mood=%s, location=%s)",
                user_id,
                state.target_mood,
                state.target_location,
            )
            await self._tracker.track(
                "flow_completed",
                "conversation_flow",
                {
                    "user_id": user_id,
                    "target_mood": state.target_mood,
                    "target_location": state.target_location,
                },
            )
        else:
            logger.debug("User %s at step %s", user_id, turn.step.value)

        return turn

    async def handle_postback(self, user_id: str, payload: str) -> Turn | None:
        """Store a button answer, then re-evaluate. Unknown payloads are ignored."""
        parsed = parse_postback(payload)
        if parsed is None:
            logger.warning("Ignoring unknown postback payload %r from %s", payload, user_id)
            return None

        answer, choice = parsed
        if answer == "mood":
            # A new mood always restarts the location question.
            values = {"target_mood": choice, "target_location": RESET_VALUE}
            await self._store.set_user_state(user_id, values, values)
        else:
            await self._store.set_user_state(
                user_id,
                {"target_location": choice},
                {"target_mood": RESET_VALUE, "target_location": choice},
            )

        await self._tracker.track(
            "postback_received",
            "conversation_flow",
            {"user_id": user_id, "answer": answer, "choice": choice},
        )
        return await self.next_action(user_id)

