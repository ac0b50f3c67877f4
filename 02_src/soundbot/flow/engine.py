"""Decision function for the two-question ambient sound flow.

State is not stored as an explicit step; it is read off the two answers:

    mood unset/reset                 -> ask for the mood
    mood chosen, location unset/reset -> ask about people
    both chosen                      -> send the audio link and clear answers
"""

from dataclasses import dataclass, field
from enum import Enum

from ..models import OutboundMessage, UserConversationState

INTRODUCTION_TEXT = "Hi there, I can help you select an ambient sound thats right for you."
MOOD_QUESTION = "Select the mood that you're trying to achieve right now"
LOCATION_QUESTION = "Does being around people relax you?"
CLOSING_WAIT_TEXT = "I'm sending you your ambient sounds now, please wait."
CLOSING_TEXT = (
    "Here is your ambient sound effect. Let me know if you want to pick a new ambient effect."
)

MOOD_PAYLOAD_PREFIX = "mood-option-"
LOCATION_PAYLOAD_PREFIX = "location-option-"

MOOD_OPTIONS = [
    ("Relaxation", "mood-option-1"),
    ("Sleep", "mood-option-2"),
    ("Concentration", "mood-option-3"),
]
LOCATION_OPTIONS = [
    ("No Way!", "location-option-1"),
    ("Yes!", "location-option-2"),
    ("Sometimes", "location-option-3"),
]

# Mood-major, location-minor. Order is significant.
SOUND_FILENAMES = [
    "forest_birds.mp3",
    "city_hum.mp3",
    "river.mp3",
    "evening_rain_forest.mp3",
    "night_crickets.mp3",
    "night_forest_stream.mp3",
    "ocean_waves.mp3",
    "cafe.mp3",
    "stormy_street.mp3",
]


class FlowStep(str, Enum):
    AWAITING_MOOD = "awaiting_mood"
    AWAITING_LOCATION = "awaiting_location"
    COMPLETE = "complete"


@dataclass
class Turn:
    """Messages to send for one inbound event, in order."""

    step: FlowStep
    messages: list[OutboundMessage] = field(default_factory=list)
    reset_state: bool = False


def audio_index(mood: int, location: int) -> int:
    """Index into SOUND_FILENAMES for 1-based answers."""
    if not (1 <= mood <= 3 and 1 <= location <= 3):
        raise ValueError(f"Answers out of range: mood={mood}, location={location}")
    return (mood - 1) * 3 + (location - 1)


def audio_url(server_url: str, mood: int, location: int) -> str:
    return server_url.rstrip("/") + "/" + SOUND_FILENAMES[audio_index(mood, location)]


def current_step(state: UserConversationState) -> FlowStep:
    if not state.mood.is_chosen:
        return FlowStep.AWAITING_MOOD
    if not state.location.is_chosen:
        return FlowStep.AWAITING_LOCATION
    return FlowStep.COMPLETE


def decide(state: UserConversationState, server_url: str) -> Turn:
    """Compute the outbound messages for the user's current answers."""
    user_id = state.user_id
    step = current_step(state)
    turn = Turn(step=step)

    if step == FlowStep.AWAITING_MOOD:
        # Only a user who never answered gets the introduction.
        if state.mood.is_unset:
            turn.messages.append(OutboundMessage.text(user_id, INTRODUCTION_TEXT))
        turn.messages.append(OutboundMessage.buttons(user_id, MOOD_QUESTION, MOOD_OPTIONS))
    elif step == FlowStep.AWAITING_LOCATION:
        turn.messages.append(
            OutboundMessage.buttons(user_id, LOCATION_QUESTION, LOCATION_OPTIONS)
        )
    else:
        link = audio_url(server_url, state.mood.value, state.location.value)
        turn.messages.extend(
            [
                OutboundMessage.text(user_id, CLOSING_WAIT_TEXT),
                OutboundMessage.text(user_id, link),
                OutboundMessage.text(user_id, CLOSING_TEXT),
            ]
        )
        turn.reset_state = True

    return turn


def parse_postback(payload: str) -> tuple[str, int] | None:
    """Split a postback payload into ("mood" | "location", choice)."""
    for prefix, answer in (
        (MOOD_PAYLOAD_PREFIX, "mood"),
        (LOCATION_PAYLOAD_PREFIX, "location"),
    ):
        if payload.startswith(prefix):
            suffix = payload[len(prefix):]
            if suffix in ("1", "2", "3"):
                return answer, int(suffix)
    return None
