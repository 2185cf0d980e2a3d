# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
regshell Exception Hierarchy

Exception Hierarchy:
    RegShellError (base)
    ├── ConfigError
    ├── ValidationError
    └── ProcessUncleanExitError

Spawn failures (reg.exe missing, access denied on the executable) are not
wrapped: the OSError raised by the platform reaches the caller unchanged.
"""

from typing import Any, Dict, Optional

# Exit code reg.exe uses when the queried key or value does not exist.
NOT_FOUND_EXIT_CODE = 1


# ============================================================================
# Base Exceptions
# ============================================================================


class RegShellError(Exception):
    """Base exception for all regshell errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        result = {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

        if self.cause:
            result["cause"] = {
                "type": self.cause.__class__.__name__,
                "message": str(self.cause),
            }

        return result

    def __str__(self):
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.cause:
            base += f" | Caused by: {self.cause}"
        return base


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigError(RegShellError):
    """Invalid key descriptor or configuration value"""


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(RegShellError):
    """Operation input rejected before any process is spawned"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({"field": self.field, "value": self.value})
        return result


# ============================================================================
# Process Errors
# ============================================================================


class ProcessUncleanExitError(RegShellError):
    """
    reg.exe exited with a non-zero code.

    The exit code is exposed read-only through ``code``; the message embeds
    the trimmed stdout and stderr of the failed command.
    """

    def __init__(self, message: str, code: int, **kwargs):
        super().__init__(message, **kwargs)
        self._code = code

    @property
    def code(self) -> int:
        """The process exit code"""
        return self._code

    @classmethod
    def from_output(
        cls, command: str, code: int, stdout: str, stderr: str
    ) -> "ProcessUncleanExitError":
        """Build the error for ``command`` from its captured output"""
        message = (
            f"{command} command exited with code {code}:\n"
            f"{stdout.strip()}\n{stderr.strip()}"
        )
        return cls(message, code, details={"command": command})

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["code"] = self._code
        return result

    def __str__(self):
        return self.message


def is_not_found(error: BaseException) -> bool:
    """
    Whether ``error`` is reg.exe's "key or value not found" exit.

    Exit code 1 is what reg.exe reports for a missing key or value on the
    Windows versions this has been observed on. It is not documented and
    other failures may share it.
    """
    return (
        isinstance(error, ProcessUncleanExitError)
        and error.code == NOT_FOUND_EXIT_CODE
    )


__all__ = [
    "NOT_FOUND_EXIT_CODE",
    "RegShellError",
    "ConfigError",
    "ValidationError",
    "ProcessUncleanExitError",
    "is_not_found",
]
