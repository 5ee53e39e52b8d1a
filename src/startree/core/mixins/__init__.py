"""
Core mixins for observable nodes.

These mixins provide the capabilities Model and Collection opt into:
hierarchy linkage/sync and persistence.
"""

from .hierarchy_mixin import HierarchyMixin, SyncState, relational_action
from .persistence_mixin import PersistenceMixin

__all__ = ["HierarchyMixin", "SyncState", "relational_action", "PersistenceMixin"]
