"""Dispatch module."""

from .queue import DEFAULT_TIMEOUT_MS, DispatchQueue, IDispatchQueue, RecipientQueue

__all__ = ["DEFAULT_TIMEOUT_MS", "DispatchQueue", "IDispatchQueue", "RecipientQueue"]
