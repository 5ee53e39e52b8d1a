"""
StarTree Persistence Layer - Memory Backend

In-memory persistence implementation for development and testing.
"""

import copy
import logging
import uuid
from typing import Any, Dict, List

from ..core.collection import Collection
from ..exceptions import EntityNotFoundError, PersistenceError
from .base import SyncBackend

logger = logging.getLogger(__name__)


class MemoryBackend(SyncBackend):
    """
    In-memory persistence implementation (Singleton).

    Records are stored as deep copies keyed by (namespace, id), so stored
    state never aliases live raw data. Data is lost when the process exits.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize memory backend (only once)."""
        if not self._initialized:
            self._data: Dict[str, Dict[Any, Dict[str, Any]]] = {}
            MemoryBackend._initialized = True

    def save_entity_sync(self, node, options: Dict[str, Any]) -> Dict[str, Any]:
        """Store a model's attributes, assigning a uuid4 id to new records."""
        payload = node.to_json()
        if not isinstance(payload, dict):
            raise PersistenceError(f"Cannot save {node!r}: only models are stored")

        id_attribute = node.id_attribute
        entity_id = payload.get(id_attribute)
        if entity_id is None:
            entity_id = str(uuid.uuid4())
            payload[id_attribute] = entity_id

        self._data.setdefault(node.namespace, {})[entity_id] = copy.deepcopy(payload)
        logger.debug(f"Saved {node.namespace}:{entity_id}")
        return {id_attribute: entity_id}

    def load_entity_sync(self, node, options: Dict[str, Any]) -> Any:
        """Load one model's record, or every record of a collection's namespace."""
        records = self._data.get(node.namespace, {})

        if isinstance(node, Collection):
            return [copy.deepcopy(record) for record in records.values()]

        entity_id = node.id
        if entity_id is None:
            raise PersistenceError(f"Cannot fetch {node!r} without an id")
        if entity_id not in records:
            raise EntityNotFoundError(node.namespace, entity_id)
        return copy.deepcopy(records[entity_id])

    def delete_entity_sync(self, node, options: Dict[str, Any]) -> bool:
        """Delete a model's record."""
        records = self._data.get(node.namespace, {})
        existed = records.pop(node.id, None) is not None
        logger.debug(f"Deleted {node.namespace}:{node.id} (existed={existed})")
        return existed

    def exists_sync(self, namespace: str, entity_id: Any) -> bool:
        return entity_id in self._data.get(namespace, {})

    def records(self, namespace: str) -> List[Dict[str, Any]]:
        """Copies of every record stored under namespace."""
        return [copy.deepcopy(record) for record in self._data.get(namespace, {}).values()]

    def cleanup(self) -> int:
        """Clear every namespace."""
        count = sum(len(records) for records in self._data.values())
        self._data.clear()
        return count


# Convenience function to get singleton instance
def get_memory_backend() -> MemoryBackend:
    """Get the singleton memory backend instance."""
    return MemoryBackend()
