"""Core data models for the sound bot."""

from .conversation import Answer, AnswerKind, UserConversationState
from .events import EventKind, InboundEvent
from .messages import MessageTag, OutboundMessage, SendResult
from .tracing import TraceEvent

__all__ = [
    # Conversation
    "Answer",
    "AnswerKind",
    "UserConversationState",
    # Events
    "EventKind",
    "InboundEvent",
    # Messages
    "MessageTag",
    "OutboundMessage",
    "SendResult",
    # Tracing
    "TraceEvent",
]
