"""Per-user conversation state models."""

from dataclasses import dataclass
from enum import Enum

# Persisted sentinel for an answer cleared after a completed flow.
RESET_VALUE = -1
CHOICES = (1, 2, 3)


class AnswerKind(str, Enum):
    """How a stored answer column should be read."""

    UNSET = "unset"  # never answered (NULL / no record)
    RESET = "reset"  # cleared to -1
    CHOSEN = "chosen"  # 1..3


@dataclass(frozen=True)
class Answer:
    """Tagged view over a stored answer column."""

    kind: AnswerKind
    value: int | None = None

    @classmethod
    def from_stored(cls, raw: int | None) -> "Answer":
        if raw is None:
            return cls(AnswerKind.UNSET)
        if raw in CHOICES:
            return cls(AnswerKind.CHOSEN, raw)
        # -1 and anything out of range both mean "ask again"
        return cls(AnswerKind.RESET, RESET_VALUE)

    @property
    def is_unset(self) -> bool:
        return self.kind == AnswerKind.UNSET

    @property
    def is_chosen(self) -> bool:
        return self.kind == AnswerKind.CHOSEN


@dataclass
class UserConversationState:
    """Stored answers for one user. Missing record means both unset."""

    user_id: str
    target_mood: int | None = None
    target_location: int | None = None

    @property
    def mood(self) -> Answer:
        return Answer.from_stored(self.target_mood)

    @property
    def location(self) -> Answer:
        return Answer.from_stored(self.target_location)
