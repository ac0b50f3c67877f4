"""Inbound webhook event models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """Classification of a single messaging event."""

    TEXT_MESSAGE = "text_message"
    ATTACHMENT = "attachment"
    QUICK_REPLY = "quick_reply"
    ECHO = "echo"
    POSTBACK = "postback"
    UNKNOWN = "unknown"


@dataclass
class InboundEvent:
    """A classified messaging event taken from a webhook batch."""

    kind: EventKind
    sender_id: str
    recipient_id: str
    timestamp: int | None = None
    message_id: str | None = None
    app_id: str | None = None
    metadata: str | None = None
    text: str | None = None
    attachments: list[dict[str, Any]] = field(default_factory=list)
    quick_reply_payload: str | None = None
    postback_payload: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)
