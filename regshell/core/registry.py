# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

r"""
Registry key access through reg.exe.

A ``Registry`` names one key (host, hive, key path, registry view, UTF-8
mode) and offers every operation in two forms:

- callback style: ``values(cb)``, ``get(name, cb)``, ... schedule the
  operation on the running event loop, return the ``Registry`` at once and
  later call ``cb(error, result)`` exactly once;
- awaitable style: ``await avalues()``, ``await aget(name)``, ... return the
  result or raise.

Examples:
    autostart = Registry(hive=Registry.HKCU,
                         key=r"\Software\Microsoft\Windows\CurrentVersion\Run")
    items = await autostart.avalues()

    def on_set(err, _):
        ...

    autostart.set("MyApp", Registry.REG_SZ, r"C:\MyApp\app.exe", on_set)
"""

import logging
import re
import warnings
from dataclasses import dataclass
from typing import Awaitable, Callable, ClassVar, List, Optional, Tuple

from regshell.core import commands, constants, parser
from regshell.core.commands import RegCommand
from regshell.core.completion import Callback, require_callback, schedule
from regshell.core.config import get_config
from regshell.core.exceptions import ConfigError, ProcessUncleanExitError, is_not_found
from regshell.core.items import RegistryItem
from regshell.core.process import ProcessOutcome, run_command

logger = logging.getLogger("regshell.registry")

# Backslash-separated segments; the empty key is the hive root
KEY_PATTERN = re.compile(r"(\\[^\\]+)*")

# [\\host\]HIVE[\key], hive in short or long form
_PATH_PATTERN = re.compile(r"^(?:\\\\([^\\]+)\\)?([^\\]+)(\\.*)?$")


@dataclass(frozen=True)
class Registry:
    """An immutable reference to one registry key"""

    host: str = ""
    hive: str = constants.HKLM
    key: str = ""
    arch: Optional[str] = None
    utf8: bool = False

    HKLM: ClassVar[str] = constants.HKLM
    HKCU: ClassVar[str] = constants.HKCU
    HKCR: ClassVar[str] = constants.HKCR
    HKU: ClassVar[str] = constants.HKU
    HKCC: ClassVar[str] = constants.HKCC
    HIVES: ClassVar[Tuple[str, ...]] = constants.HIVES

    REG_SZ: ClassVar[str] = constants.REG_SZ
    REG_MULTI_SZ: ClassVar[str] = constants.REG_MULTI_SZ
    REG_EXPAND_SZ: ClassVar[str] = constants.REG_EXPAND_SZ
    REG_DWORD: ClassVar[str] = constants.REG_DWORD
    REG_QWORD: ClassVar[str] = constants.REG_QWORD
    REG_BINARY: ClassVar[str] = constants.REG_BINARY
    REG_NONE: ClassVar[str] = constants.REG_NONE
    REG_TYPES: ClassVar[Tuple[str, ...]] = constants.REG_TYPES

    DEFAULT_VALUE: ClassVar[str] = constants.DEFAULT_VALUE

    def __post_init__(self):
        object.__setattr__(self, "host", str(self.host or ""))
        object.__setattr__(self, "key", str(self.key or ""))
        object.__setattr__(self, "arch", self.arch or None)
        object.__setattr__(self, "utf8", bool(self.utf8))

        if self.hive not in constants.HIVES:
            raise ConfigError("illegal hive specified.", details={"hive": self.hive})

        if not KEY_PATTERN.fullmatch(self.key):
            raise ConfigError("illegal key specified.", details={"key": self.key})

        if self.arch is not None and self.arch not in constants.ARCHS:
            raise ConfigError(
                "illegal architecture specified (use x86 or x64)",
                details={"arch": self.arch},
            )

    @classmethod
    def from_path(
        cls, path: str, arch: Optional[str] = None, utf8: bool = False
    ) -> "Registry":
        r"""
        Parse ``HKCU\Software\Foo``, ``\\host\HKLM\Software`` or
        ``HKEY_CURRENT_USER\Software`` into a Registry.

        Raises:
            ConfigError: If the path does not name a known hive
        """
        match = _PATH_PATTERN.match(path.strip())
        if not match:
            raise ConfigError("illegal registry path specified.", details={"path": path})

        host, hive, key = match.groups()
        hive = hive.upper()
        hive = constants.HIVE_NAMES.get(hive, hive)
        return cls(
            host=host or "",
            hive=hive,
            key=(key or "").rstrip("\\"),
            arch=arch,
            utf8=utf8,
        )

    @property
    def path(self) -> str:
        """The full path to the registry key"""
        prefix = "" if not self.host else f"\\\\{self.host}\\"
        return prefix + self.hive + self.key

    @property
    def parent(self) -> "Registry":
        """The parent key; the parent of a hive root is the root itself"""
        i = self.key.rfind("\\")
        return self.with_key("" if i == -1 else self.key[:i])

    def with_key(self, key: str) -> "Registry":
        """Another key on the same host, hive, view and mode"""
        return type(self)(
            host=self.host,
            hive=self.hive,
            key=key,
            arch=self.arch,
            utf8=self.utf8,
        )

    def __str__(self):
        return self.path

    # ========== Execution ==========

    def _command_options(self):
        return {"system_root": get_config().registry.system_root}

    async def _execute(self, command: RegCommand) -> ProcessOutcome:
        outcome = await run_command(command, encoding=get_config().registry.encoding)
        return outcome.check()

    async def _values(self, command: RegCommand) -> List[RegistryItem]:
        outcome = await self._execute(command)
        return parser.parse_values(outcome.stdout, self)

    async def _keys(self, command: RegCommand) -> List["Registry"]:
        outcome = await self._execute(command)
        return parser.parse_keys(outcome.stdout, self)

    async def _get(self, command: RegCommand) -> Optional[RegistryItem]:
        outcome = await self._execute(command)
        return parser.parse_item(outcome.stdout, self)

    async def _write(self, command: RegCommand) -> None:
        await self._execute(command)

    async def _exists(self, command: RegCommand) -> bool:
        # reg.exe exits with 1 when the key or value is missing
        try:
            await self._execute(command)
        except ProcessUncleanExitError as e:
            if is_not_found(e):
                return False
            raise
        return True

    def _dispatch(
        self,
        factory: Callable[[], Awaitable],
        callback: Callback,
        operation: str,
    ) -> "Registry":
        schedule(factory, callback, label=f"{operation} {self.path}")
        return self

    # ========== Callback API ==========

    def values(self, callback: Callback) -> "Registry":
        """
        Retrieve all values from this key.

        ``callback(err, items)`` receives a list of RegistryItem in
        enumeration order.
        """
        require_callback(callback)
        command = commands.query_command(self, **self._command_options())
        return self._dispatch(lambda: self._values(command), callback, "values")

    def keys(self, callback: Callback) -> "Registry":
        """
        Retrieve all direct subkeys of this key.

        ``callback(err, keys)`` receives a list of Registry objects.
        """
        require_callback(callback)
        command = commands.query_command(self, **self._command_options())
        return self._dispatch(lambda: self._keys(command), callback, "keys")

    def get(self, name: str, callback: Callback) -> "Registry":
        """
        Get a named value; use DEFAULT_VALUE or "" for the default value.

        ``callback(err, item)`` receives a RegistryItem, or None when the
        output held no parseable value.
        """
        require_callback(callback)
        command = commands.get_command(self, name, **self._command_options())
        return self._dispatch(lambda: self._get(command), callback, "get")

    def set(self, name: str, type: str, value, callback: Callback) -> "Registry":
        """
        Set a named value, overwriting an existing one.

        Raises:
            TypeError: If callback is not callable
            ValidationError: If type is not one of REG_TYPES
        """
        require_callback(callback)
        command = commands.set_command(
            self, name, type, value, **self._command_options()
        )
        return self._dispatch(lambda: self._write(command), callback, "set")

    def remove(self, name: str, callback: Callback) -> "Registry":
        """Remove a named value (the default value if name is empty)"""
        require_callback(callback)
        command = commands.remove_command(self, name, **self._command_options())
        return self._dispatch(lambda: self._write(command), callback, "remove")

    def clear(self, callback: Callback) -> "Registry":
        """Remove all values from this key, keeping its subkeys"""
        require_callback(callback)
        command = commands.clear_command(self, **self._command_options())
        return self._dispatch(lambda: self._write(command), callback, "clear")

    def erase(self, callback: Callback) -> "Registry":
        """Deprecated alias of clear"""
        warnings.warn(
            "Registry.erase() is deprecated, use clear() or destroy()",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.clear(callback)

    def destroy(self, callback: Callback) -> "Registry":
        """Delete this key and all of its subkeys"""
        require_callback(callback)
        command = commands.destroy_command(self, **self._command_options())
        return self._dispatch(lambda: self._write(command), callback, "destroy")

    def create(self, callback: Callback) -> "Registry":
        """Create this key; a no-op if it already exists"""
        require_callback(callback)
        command = commands.create_command(self, **self._command_options())
        return self._dispatch(lambda: self._write(command), callback, "create")

    def key_exists(self, callback: Callback) -> "Registry":
        """``callback(err, exists)`` with exists True if this key exists"""
        require_callback(callback)
        command = commands.query_command(self, **self._command_options())
        return self._dispatch(lambda: self._exists(command), callback, "key_exists")

    def value_exists(self, name: str, callback: Callback) -> "Registry":
        """``callback(err, exists)`` with exists True if the value exists"""
        require_callback(callback)
        command = commands.get_command(self, name, **self._command_options())
        return self._dispatch(
            lambda: self._exists(command), callback, "value_exists"
        )

    # ========== Awaitable API ==========

    async def avalues(self) -> List[RegistryItem]:
        return await self._values(
            commands.query_command(self, **self._command_options())
        )

    async def akeys(self) -> List["Registry"]:
        return await self._keys(commands.query_command(self, **self._command_options()))

    async def aget(self, name: str) -> Optional[RegistryItem]:
        return await self._get(
            commands.get_command(self, name, **self._command_options())
        )

    async def aset(self, name: str, type: str, value) -> None:
        await self._write(
            commands.set_command(self, name, type, value, **self._command_options())
        )

    async def aremove(self, name: str) -> None:
        await self._write(
            commands.remove_command(self, name, **self._command_options())
        )

    async def aclear(self) -> None:
        await self._write(commands.clear_command(self, **self._command_options()))

    async def adestroy(self) -> None:
        await self._write(commands.destroy_command(self, **self._command_options()))

    async def acreate(self) -> None:
        await self._write(commands.create_command(self, **self._command_options()))

    async def akey_exists(self) -> bool:
        return await self._exists(
            commands.query_command(self, **self._command_options())
        )

    async def avalue_exists(self, name: str) -> bool:
        return await self._exists(
            commands.get_command(self, name, **self._command_options())
        )
