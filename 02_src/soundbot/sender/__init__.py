"""Sender module."""

from .sender import ISender, SendAPIClient

__all__ = ["ISender", "SendAPIClient"]
