"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single observability event (queue, flow or ingress activity)."""

    id: str
    event_type: str  # e.g. "message_dispatched", "echo_received"
    actor: str  # component that recorded it
    data: dict
    timestamp: datetime
