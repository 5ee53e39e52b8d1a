"""
StarTree Persistence Layer

Backends that Model.save/fetch/destroy and Collection.fetch talk to.
"""

from .base import SyncBackend
from .memory import MemoryBackend, get_memory_backend

__all__ = ["SyncBackend", "MemoryBackend", "get_memory_backend"]
