"""Storage module."""

from .storage import CollaborationRecord, IStorage, Storage

__all__ = ["CollaborationRecord", "IStorage", "Storage"]
