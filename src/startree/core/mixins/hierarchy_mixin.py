"""
HierarchyMixin: parent linkage and bidirectional sync for observable nodes.

A linked node mirrors a raw value (its `source`) that its parent stores under
a relation key. Local mutations are written up into that shared raw value and
re-announced on the parent (sync_up); replacements of the parent's raw value
are pushed down into the node (sync_down).

Model and Collection compose this mixin and provide the direction-specific
bodies; everything shared (the guard, identity repair, the event cascade)
lives here.
"""

import functools
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class SyncState(Enum):
    """Per-node propagation state"""
    IDLE = "idle"
    SYNCING = "syncing"


def relational_action(method: Callable) -> Callable:
    """
    Run method only while the node is linked and not already syncing.

    The node is marked SYNCING for the duration of the call, so the echo
    events the call itself triggers cannot re-enter it.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self.parent is None:
            return None
        if self.sync_state is SyncState.SYNCING:
            logger.debug(f"Dropped re-entrant {method.__name__} on {self!r}")
            return None
        with self.hierarchy_suspended():
            return method(self, *args, **kwargs)
    return wrapper


def strip_callbacks(options: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of options without per-call success/error callbacks"""
    return {k: v for k, v in options.items() if k not in ("success", "error")}


class HierarchyMixin:
    """
    Hierarchy capabilities mixin.

    Provides parent linkage, the re-entrancy guard and the helpers sync_up
    and sync_down are built from.
    """

    bubbling_change_event: bool = True

    parent = None
    source = None
    sync_state: SyncState = SyncState.IDLE

    # Set by auto-wiring: persistence calls are forwarded to the parent
    persist_via_parent: bool = False

    @contextmanager
    def hierarchy_suspended(self):
        """Mark this node SYNCING, restoring IDLE on every exit path."""
        self.sync_state = SyncState.SYNCING
        try:
            yield self
        finally:
            self.sync_state = SyncState.IDLE

    def link_parent(self, parent, source=None) -> None:
        """Attach this node to parent, mirroring source."""
        self.parent = parent
        self.source = source if source is not None else self._empty_source()
        self._subscribe_sync()
        logger.debug(f"Linked {self!r} to {parent!r}")

    def unlink_parent(self) -> None:
        """Detach from the parent; the node becomes a free-standing root."""
        if self.parent is None:
            return
        logger.debug(f"Detached {self!r} from {self.parent!r}")
        self._unsubscribe_sync()
        self.parent = None
        self.source = None
        self.persist_via_parent = False

    def _subscribe_sync(self) -> None:
        raise NotImplementedError

    def _unsubscribe_sync(self) -> None:
        raise NotImplementedError

    def _empty_source(self):
        raise NotImplementedError

    def _is_empty(self) -> bool:
        raise NotImplementedError

    def _relation_key(self) -> Optional[str]:
        return self.parent.get_relation(self)

    def _verify_source(self, field: str) -> bool:
        """
        Make `source` the exact object the parent stores under field.

        Returns False when there is nothing to project: the parent holds no
        value for field and this node is empty.
        """
        raw = self.parent.attributes.get(field)

        if raw is None:
            if self._is_empty():
                return False
            if self.source is None:
                self.source = self._empty_source()
            self.parent.attributes[field] = self.source
            logger.debug(f"Materialized {field!r} on {self.parent!r} from {self!r}")
            return True

        if raw is not self.source:
            logger.debug(f"Repaired source drift for {field!r} on {self.parent!r}")
            self.source = raw
        return True

    def _bubble(self, field: str, silent: bool = False) -> None:
        """Announce the write on the parent: field event, then generic event."""
        if not self.bubbling_change_event or silent:
            return
        parent = self.parent
        options = {"propagated_from": self}
        parent.trigger(f"change:{field}", parent, parent.attributes.get(field), options)
        parent.trigger("change", parent, options)

    def _forward_persistence(self, method: str, options: Dict[str, Any]):
        """Persist the parent instead, whatever method was requested; the root's semantics govern."""
        logger.debug(f"Forwarding {method} on {self!r} to {self.parent!r}")
        return self.parent.save(None, **strip_callbacks(options))


__all__ = ["HierarchyMixin", "SyncState", "relational_action", "strip_callbacks"]
