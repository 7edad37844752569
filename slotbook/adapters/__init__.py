"""
Adapters layer - Record stores for profiles, event types and bookings.
"""

from .json_store import JsonStore
from .memory_store import InMemoryStore

__all__ = ["InMemoryStore", "JsonStore"]
