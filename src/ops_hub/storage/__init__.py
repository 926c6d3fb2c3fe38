"""Persistence interface consumed by the automation core."""

from ops_hub.storage.base import Storage
from ops_hub.storage.memory import MemoryStorage

__all__ = ["Storage", "MemoryStorage"]
