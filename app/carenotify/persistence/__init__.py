"""Durable key-value persistence."""

from carenotify.persistence.factory import create_durable_store
from carenotify.persistence.store import DurableStore, InMemoryDurableStore

__all__ = [
    "DurableStore",
    "InMemoryDurableStore",
    "create_durable_store",
]
