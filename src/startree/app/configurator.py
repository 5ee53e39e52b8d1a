"""
Application Configurator

Centralized setup for StarTree: resolves the configuration, installs it
globally and wires the library logger.
"""

import logging
from typing import Optional

from .configuration import TreeConfig, get_config, set_config

logger = logging.getLogger(__name__)

_HANDLER_MARKER = "_startree_handler"


def configure(config: Optional[TreeConfig] = None, **overrides) -> TreeConfig:
    """
    Configure StarTree with proper initialization order.

    Args:
        config: Configuration to install, defaults to the current one
        **overrides: Field values applied on top of the configuration

    Returns:
        The installed configuration

    Example:
        ```python
        from startree import configure

        configure(trace_events=True)
        ```
    """
    # Step 1: Resolve configuration
    config = config or get_config()
    if overrides:
        config = config.model_copy(update=overrides)

    # Step 2: Install it globally
    set_config(config)

    # Step 3: Wire logging
    configure_logging(config)

    logger.info(f"StarTree configured for {config.environment.value}")
    return config


def configure_logging(config: Optional[TreeConfig] = None) -> logging.Logger:
    """Install a stream handler on the `startree` logger. Safe to call repeatedly."""
    config = config or get_config()
    root = logging.getLogger("startree")

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.logging.format))
    setattr(handler, _HANDLER_MARKER, True)
    root.addHandler(handler)
    root.setLevel(config.logging.level)
    return root
