"""Ambient sound bot core."""

from .app import Application, IApplication
from .config import ConfigError, Settings
from .dispatch import DispatchQueue, IDispatchQueue
from .flow import ConversationFlow, IConversationFlow
from .ingress import EventRouter, IEventRouter
from .models import (
    Answer,
    AnswerKind,
    EventKind,
    InboundEvent,
    MessageTag,
    OutboundMessage,
    SendResult,
    TraceEvent,
    UserConversationState,
)
from .sender import ISender, SendAPIClient
from .storage import IStateStore, IStorage, Storage
from .tracker import ITracker, Tracker

__all__ = [
    # Application
    "Application",
    "IApplication",
    "ConfigError",
    "Settings",
    # Models
    "Answer",
    "AnswerKind",
    "EventKind",
    "InboundEvent",
    "MessageTag",
    "OutboundMessage",
    "SendResult",
    "TraceEvent",
    "UserConversationState",
    # Components
    "IStateStore",
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "ISender",
    "SendAPIClient",
    "IDispatchQueue",
    "DispatchQueue",
    "IConversationFlow",
    "ConversationFlow",
    "IEventRouter",
    "EventRouter",
]
