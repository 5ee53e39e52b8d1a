"""
PersistenceMixin: Persistence operations without base model dependencies.

This mixin provides sync/fetch for any observable node. Nodes auto-wired into
a parent never talk to a backend themselves: their persistence calls are
forwarded up the hierarchy so the root persists the whole tree.
"""

import logging
from typing import Any, Optional, TYPE_CHECKING

from ...exceptions import PersistenceError

if TYPE_CHECKING:
    from ...persistence import SyncBackend

logger = logging.getLogger(__name__)


class PersistenceMixin:
    """
    Persistence operations mixin.

    Subclasses implement _apply_fetched() to absorb a read response.
    """

    # Backend instance shared by every node of the class (None = not persisted)
    backend: Optional["SyncBackend"] = None
    _namespace: Optional[str] = None

    @property
    def namespace(self) -> str:
        """Get the storage namespace for this node."""
        return self._namespace or self.__class__.__name__

    def get_backend(self) -> Optional["SyncBackend"]:
        """Backend for this node, falling back to the owning collection's."""
        if self.backend is not None:
            return self.backend
        collection = getattr(self, "collection", None)
        if collection is not None:
            return collection.get_backend()
        return None

    def sync(self, method: str, node=None, **options) -> Any:
        """
        Run a persistence method ("create", "read", "update", "patch", "delete").

        Raises:
            PersistenceError: If the node has no backend configured
        """
        if self.persist_via_parent and self.parent is not None:
            return self._forward_persistence(method, options)

        backend = self.get_backend()
        if backend is None:
            raise PersistenceError(f"{self.__class__.__name__} has no persistence backend configured")

        logger.debug(f"{method} {self!r} via {backend.__class__.__name__}")
        return backend.sync(method, node if node is not None else self, options)

    def fetch(self, **options) -> Any:
        """Load state from the backend and apply it to this node."""
        success = options.pop("success", None)
        error = options.pop("error", None)
        try:
            response = self.sync("read", self, **options)
        except PersistenceError as e:
            if error is None:
                raise
            error(self, e, options)
            return None

        if self.persist_via_parent:
            # The root persisted the whole tree and owns the response
            return response

        self._apply_fetched(response, options)
        if success:
            success(self, response, options)
        self.trigger("sync", self, response, options)
        return response

    def _apply_fetched(self, response: Any, options: dict) -> None:
        raise NotImplementedError
