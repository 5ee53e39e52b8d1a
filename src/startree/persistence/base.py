"""
StarTree Persistence Layer - Base Classes

This module provides the abstract interface for node persistence backends.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..exceptions import PersistenceError


class SyncBackend(ABC):
    """
    Abstract base class for persistence backends.

    Nodes call sync(method, node, options); the backend dispatches the
    method to the matching *_sync operation.
    """

    METHODS = ("create", "read", "update", "patch", "delete")

    def sync(self, method: str, node, options: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run one persistence method for node.

        Args:
            method: One of "create", "read", "update", "patch", "delete"
            node: Model or Collection being persisted
            options: Per-call options forwarded by the node

        Returns:
            Backend response (attributes for models, a list for collections)
        """
        options = options or {}
        if method in ("create", "update", "patch"):
            return self.save_entity_sync(node, options)
        if method == "read":
            return self.load_entity_sync(node, options)
        if method == "delete":
            return self.delete_entity_sync(node, options)
        raise PersistenceError(f"Unsupported sync method '{method}'")

    @abstractmethod
    def save_entity_sync(self, node, options: Dict[str, Any]) -> Dict[str, Any]:
        """
        Store the node's serialized state.

        Returns:
            Attributes assigned by the backend (at least the id)
        """
        pass

    @abstractmethod
    def load_entity_sync(self, node, options: Dict[str, Any]) -> Any:
        """
        Load stored state for node.

        Raises:
            EntityNotFoundError: If a model's id has no stored record
        """
        pass

    @abstractmethod
    def delete_entity_sync(self, node, options: Dict[str, Any]) -> bool:
        """
        Delete the node's stored record.

        Returns:
            True if a record existed, False otherwise
        """
        pass

    @abstractmethod
    def exists_sync(self, namespace: str, entity_id: Any) -> bool:
        """Check whether a record is stored under (namespace, entity_id)."""
        pass

    @abstractmethod
    def cleanup(self) -> int:
        """
        Remove every stored record.

        Returns:
            Number of records removed
        """
        pass
