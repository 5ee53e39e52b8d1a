"""
Configuration Management for StarTree

Settings that shape how hierarchies behave at runtime (detaching removed
elements, tracing event dispatch) and how the library logs. Configuration is
resolved once per process and can be replaced at any time with set_config().
"""

import os
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ConfigurationError


class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class TreeConfig(BaseModel):
    """Complete StarTree configuration"""
    environment: Environment = Environment.DEVELOPMENT

    # Unlink elements from the hierarchy when they leave a collection
    detach_on_remove: bool = True

    # Log every trigger() call at DEBUG level
    trace_events: bool = False

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def for_environment(cls, environment: Environment) -> "TreeConfig":
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.logging.level = "INFO"
            config.trace_events = False

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "TreeConfig":
        """Create configuration from dictionary"""
        try:
            return cls.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_environment(cls) -> "TreeConfig":
        """Create configuration from environment variables"""
        env_name = os.getenv("STARTREE_ENV", "development")
        try:
            environment = Environment(env_name.lower())
        except ValueError:
            valid = [env.value for env in Environment]
            raise ConfigurationError(f"Invalid STARTREE_ENV '{env_name}'. Valid options: {valid}")

        config = cls.for_environment(environment)

        if os.getenv("STARTREE_DETACH_ON_REMOVE"):
            config.detach_on_remove = _parse_bool("STARTREE_DETACH_ON_REMOVE")

        if os.getenv("STARTREE_TRACE_EVENTS"):
            config.trace_events = _parse_bool("STARTREE_TRACE_EVENTS")

        if os.getenv("STARTREE_LOG_LEVEL"):
            config.logging.level = os.getenv("STARTREE_LOG_LEVEL").upper()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return self.model_dump(mode="json")


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{raw}'")


# Global configuration management
_current_config: Optional[TreeConfig] = None


def set_config(config: Optional[TreeConfig]):
    """Set the global configuration (None resets to lazy environment loading)"""
    global _current_config
    _current_config = config


def get_config() -> TreeConfig:
    """Get the current global configuration"""
    global _current_config

    if _current_config is None:
        # Auto-create from environment if not set
        _current_config = TreeConfig.from_environment()

    return _current_config


__all__ = [
    "TreeConfig", "LoggingConfig", "Environment",
    "set_config", "get_config",
]
