"""
StarTree Core

Observable primitives and the hierarchy sync built on them.
"""

from .events import Events, ALL, ABSORB_PRIORITY, PROPAGATION_PRIORITY
from .mixins import HierarchyMixin, PersistenceMixin, SyncState, relational_action
from .model import Model
from .collection import Collection

__all__ = [
    "Events",
    "ALL",
    "PROPAGATION_PRIORITY",
    "ABSORB_PRIORITY",
    "HierarchyMixin",
    "PersistenceMixin",
    "SyncState",
    "relational_action",
    "Model",
    "Collection",
]
