"""
Application Layer

Configuration and logging setup shared by every StarTree hierarchy.

Key components:
- configuration: TreeConfig and the global get_config/set_config pair
- configurator: configure() entry point and logging wiring
"""

from .configuration import TreeConfig, LoggingConfig, Environment, get_config, set_config
from .configurator import configure, configure_logging

__all__ = [
    'TreeConfig',
    'LoggingConfig',
    'Environment',
    'get_config',
    'set_config',
    'configure',
    'configure_logging',
]
