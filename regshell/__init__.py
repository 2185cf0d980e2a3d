# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""regshell - Windows registry access through reg.exe"""

from regshell.core import (
    ConfigError,
    ProcessUncleanExitError,
    Registry,
    RegistryItem,
    RegShellError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    "Registry",
    "RegistryItem",
    "RegShellError",
    "ConfigError",
    "ValidationError",
    "ProcessUncleanExitError",
]
