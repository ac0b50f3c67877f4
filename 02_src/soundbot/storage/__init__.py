"""Storage module."""

from .storage import IStateStore, IStorage, Storage

__all__ = ["IStateStore", "IStorage", "Storage"]
