# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
regshell Core - Init file

Exports the registry key type, its value records and the error hierarchy.
"""

from .config import RegShellConfig, get_config, load_config, reload_config
from .exceptions import (
    ConfigError,
    ProcessUncleanExitError,
    RegShellError,
    ValidationError,
    is_not_found,
)
from .items import RegistryItem
from .logger import set_debug_output, setup_logging
from .registry import Registry

__all__ = [
    # Registry access
    "Registry",
    "RegistryItem",
    # Errors
    "RegShellError",
    "ConfigError",
    "ValidationError",
    "ProcessUncleanExitError",
    "is_not_found",
    # Configuration
    "RegShellConfig",
    "get_config",
    "load_config",
    "reload_config",
    # Logging
    "setup_logging",
    "set_debug_output",
]
