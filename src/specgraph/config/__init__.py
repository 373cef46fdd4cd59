"""
specgraph — configuration

File: src/specgraph/config/__init__.py

Purpose
- ``specgraph.toml`` schema, defaults and the layered loader.
"""

from specgraph.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    layout_from_config,
    load_config,
    logging_config_from,
    watch_settings_from,
)
from specgraph.config.schema import (
    ConfigValidationError,
    ConfigValidationIssue,
    SpecgraphConfig,
    assert_valid_config,
    default_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "SpecgraphConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "layout_from_config",
    "load_config",
    "logging_config_from",
    "validate_config",
    "watch_settings_from",
]
