"""
StarTree Exceptions

The sync protocol itself never raises: relation misses, identity drift and
re-entrant calls are handled silently. These errors cover the ambient layers
around it (persistence and configuration).
"""


class StarTreeError(Exception):
    """Base exception for all StarTree errors"""
    pass


class PersistenceError(StarTreeError):
    """Raised when a persistence operation cannot be completed"""
    pass


class EntityNotFoundError(PersistenceError):
    """Raised when a backend has no record for the requested entity"""

    def __init__(self, namespace: str, entity_id):
        self.namespace = namespace
        self.entity_id = entity_id
        super().__init__(f"No {namespace} stored under id {entity_id!r}")


class ConfigurationError(StarTreeError):
    """Raised when configuration values cannot be parsed"""
    pass


__all__ = [
    "StarTreeError",
    "PersistenceError",
    "EntityNotFoundError",
    "ConfigurationError",
]
