"""Outbound message data models."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MessageTag(str, Enum):
    """Metadata tag echoed back by the platform for each sent message."""

    TEXT = "text_message"
    POSTBACK = "postback_message"


@dataclass(frozen=True)
class OutboundMessage:
    """A message waiting to be handed to the Send API."""

    recipient_id: str
    payload: dict[str, Any]  # Send API "message" body
    tag: MessageTag = MessageTag.TEXT

    @classmethod
    def text(cls, recipient_id: str, text: str) -> "OutboundMessage":
        return cls(recipient_id=recipient_id, payload={"text": text})

    @classmethod
    def buttons(
        cls, recipient_id: str, text: str, buttons: list[tuple[str, str]]
    ) -> "OutboundMessage":
        """Button template; each button is a (title, postback payload) pair."""
        return cls(
            recipient_id=recipient_id,
            payload={
                "attachment": {
                    "type": "template",
                    "payload": {
                        "template_type": "button",
                        "text": text,
                        "buttons": [
                            {"type": "postback", "title": title, "payload": payload}
                            for title, payload in buttons
                        ],
                    },
                },
            },
            tag=MessageTag.POSTBACK,
        )

    @property
    def text_content(self) -> str | None:
        return self.payload.get("text")

    def to_request(self) -> dict[str, Any]:
        """Build the Send API request body."""
        message = copy.deepcopy(self.payload)
        message["metadata"] = self.tag.value
        return {"recipient": {"id": self.recipient_id}, "message": message}


@dataclass
class SendResult:
    """Outcome of one Send API call."""

    success: bool
    recipient_id: str
    message_id: str | None = None
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
