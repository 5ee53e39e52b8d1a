"""
StarTree - Nested Observable Models

Keeps a tree of observable models and collections synchronized with the
nested raw data of its root: child changes are written into the parent's
raw attributes and re-announced on the parent, and replacing a parent's
raw value resets the children built from it.

Example:
    from startree import Model, Collection

    class Bed(Model):
        pass

    class Beds(Collection):
        model = Bed

    class Room(Model):
        related = {"beds": Beds}

    room = Room({"beds": [{"size": "single"}]})
    room.beds.add({"size": "double"})
    room.get("beds")   # [{"size": "single"}, {"size": "double"}]
"""

from .app import TreeConfig, Environment, configure, get_config, set_config
from .core import Collection, Events, Model, SyncState
from .exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    PersistenceError,
    StarTreeError,
)
from .persistence import MemoryBackend, SyncBackend, get_memory_backend

__version__ = "0.1.0"

__all__ = [
    "Model",
    "Collection",
    "Events",
    "SyncState",
    "TreeConfig",
    "Environment",
    "configure",
    "get_config",
    "set_config",
    "SyncBackend",
    "MemoryBackend",
    "get_memory_backend",
    "StarTreeError",
    "PersistenceError",
    "EntityNotFoundError",
    "ConfigurationError",
]
