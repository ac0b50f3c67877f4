"""Webhook ingress module."""

from .classifier import classify, iter_events, parse_event
from .router import EventRouter, IEventRouter
from .signature import SignatureError, verify_signature

__all__ = [
    "classify",
    "iter_events",
    "parse_event",
    "EventRouter",
    "IEventRouter",
    "SignatureError",
    "verify_signature",
]
