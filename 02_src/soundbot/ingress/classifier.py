"""Classification of raw messaging events from webhook batches."""

from typing import Any, Iterator

from ..models import EventKind, InboundEvent


def classify(raw: dict[str, Any]) -> EventKind:
    """Return the kind of a single messaging event.

    Echo takes priority over every other message field.
    """
    message = raw.get("message")
    if isinstance(message, dict):
        if message.get("is_echo"):
            return EventKind.ECHO
        if message.get("quick_reply"):
            return EventKind.QUICK_REPLY
        if message.get("text"):
            return EventKind.TEXT_MESSAGE
        if message.get("attachments"):
            return EventKind.ATTACHMENT
        return EventKind.UNKNOWN

    if isinstance(raw.get("postback"), dict):
        return EventKind.POSTBACK

    return EventKind.UNKNOWN


def _id_of(raw: dict[str, Any], key: str) -> str:
    party = raw.get(key)
    if isinstance(party, dict) and party.get("id") is not None:
        return str(party["id"])
    return ""


def parse_event(raw: dict[str, Any]) -> InboundEvent:
    """Classify a messaging event and pull out the fields its kind uses."""
    kind = classify(raw)
    event = InboundEvent(
        kind=kind,
        sender_id=_id_of(raw, "sender"),
        recipient_id=_id_of(raw, "recipient"),
        timestamp=raw.get("timestamp"),
        raw=raw,
    )

    message = raw.get("message")
    if isinstance(message, dict):
        event.message_id = message.get("mid")
        event.app_id = str(message["app_id"]) if message.get("app_id") is not None else None
        event.metadata = message.get("metadata")
        event.text = message.get("text")
        event.attachments = list(message.get("attachments") or [])
        quick_reply = message.get("quick_reply")
        if isinstance(quick_reply, dict):
            event.quick_reply_payload = quick_reply.get("payload")
    elif kind == EventKind.POSTBACK:
        event.postback_payload = raw["postback"].get("payload")

    return event


def iter_events(entries: list[dict[str, Any]]) -> Iterator[InboundEvent]:
    """Yield parsed events from every entry of a webhook batch, in order."""
    for entry in entries:
        for raw in entry.get("messaging") or []:
            if isinstance(raw, dict):
                yield parse_event(raw)
