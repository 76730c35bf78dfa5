"""Configuration module for mdcrules.

This module provides configuration loading, validation, and schema definitions
for the rule engine.

Usage:
    from mdcrules.config import load_config, Config

    config = load_config()  # Auto-discovers config file
    config = load_config("/path/to/mdcrules.yaml")  # Explicit path
"""

from mdcrules.config.loader import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    EnvironmentVariableError,
    discover_config_path,
    load_config,
    load_config_or_default,
)
from mdcrules.config.schema import (
    Config,
    DuplicatePolicy,
    RulesConfig,
    SessionConfig,
)

__all__ = [
    "Config",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "DuplicatePolicy",
    "EnvironmentVariableError",
    "RulesConfig",
    "SessionConfig",
    "discover_config_path",
    "load_config",
    "load_config_or_default",
]
