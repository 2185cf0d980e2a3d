# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
reg.exe command construction.

Argument grammar:
    QUERY  <path> [/v <name> | /ve] [/reg:32 | /reg:64]
    ADD    <path> [/v <name> | /ve] /t <type> /d <value> /f [/reg:32 | /reg:64]
    ADD    <path> /f [/reg:32 | /reg:64]
    DELETE <path> /f [/v <name> | /ve | /va] [/reg:32 | /reg:64]

In UTF-8 mode the command becomes a shell pipeline that switches the
console code page to 65001 before running reg.exe, and every argument is
quoted for cmd.exe by ``quote_shell_arg``.
"""

import ntpath
import os
import re
import subprocess
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

from regshell.core.constants import ARCH_X64, ARCH_X86, REG_TYPES
from regshell.core.exceptions import ConfigError, ValidationError

if TYPE_CHECKING:
    from regshell.core.registry import Registry

QUERY = "QUERY"
ADD = "ADD"
DELETE = "DELETE"

UTF8_CODE_PAGE = "65001"
DEFAULT_SYSTEM_ROOT = "C:\\Windows"

# Characters that force an argument into double quotes
_SHELL_SPECIAL = re.compile(r'[\s&|<>^()"]')

# Characters cmd.exe would interpret outside double quotes
_CMD_METACHARS = frozenset("&|<>^()")


@dataclass(frozen=True)
class RegCommand:
    """A fully resolved reg.exe invocation"""

    verb: str
    executable: str
    args: Tuple[str, ...]
    shell: bool = False

    @property
    def argv(self) -> List[str]:
        """Executable followed by its arguments (exec mode)"""
        return [self.executable, *self.args]

    @property
    def command_line(self) -> str:
        """The command as one string, as handed to the shell in UTF-8 mode"""
        if self.shell:
            return " ".join([self.executable, *(quote_shell_arg(a) for a in self.args)])
        return subprocess.list2cmdline(self.argv)


def quote_shell_arg(arg: str) -> str:
    """
    Quote one argument so that, after cmd.exe and the CommandLineToArgvW
    rules, reg.exe receives exactly ``arg``.

    Backslashes and embedded quotes follow ``subprocess.list2cmdline``.
    cmd.exe toggles its own quote state on every ``"`` (escaped or not), so
    that state is tracked separately: metacharacters outside it get a caret,
    and ``%`` is always emitted as ``^%`` outside cmd quotes so that
    ``%VAR%`` reaches reg.exe unexpanded.
    """
    if arg == "":
        return '""'

    result = []
    backslashes = 0
    # Quote state as seen by CommandLineToArgvW and by cmd.exe
    argv_quoted = bool(_SHELL_SPECIAL.search(arg)) and not arg.startswith("%")
    cmd_quoted = argv_quoted
    if argv_quoted:
        result.append('"')

    for c in arg:
        if c == "\\":
            backslashes += 1
            continue

        if c == '"':
            result.append("\\" * (backslashes * 2 + 1) + '"')
            cmd_quoted = not cmd_quoted
        elif c == "%":
            if cmd_quoted:
                # Leave the quotes so the caret is live
                result.append("\\" * (backslashes * 2) + '"')
                argv_quoted = not argv_quoted
                cmd_quoted = False
            else:
                result.append("\\" * backslashes)
            result.append("^%")
        elif c in " \t" and not argv_quoted:
            result.append("\\" * (backslashes * 2) + '"' + c)
            argv_quoted = True
            cmd_quoted = not cmd_quoted
        else:
            result.append("\\" * backslashes)
            if c in _CMD_METACHARS and not cmd_quoted:
                result.append("^")
            result.append(c)
        backslashes = 0

    if argv_quoted:
        result.append("\\" * (backslashes * 2) + '"')
    else:
        result.append("\\" * backslashes)
    return "".join(result)


def resolve_system_root(system_root: Optional[str] = None) -> str:
    """Windows directory: explicit value, %SystemRoot%, %windir%, then C:\\Windows"""
    return (
        system_root
        or os.environ.get("SystemRoot")
        or os.environ.get("windir")
        or DEFAULT_SYSTEM_ROOT
    )


def get_reg_exe_path(
    utf8: bool,
    system_root: Optional[str] = None,
    platform: Optional[str] = None,
) -> str:
    """
    Path to the system's reg.exe, ignoring any other reg.exe on PATH.

    Off Windows this is the bare token ``REG``, which only makes sense with a
    stand-in on PATH (tests, mocks).
    """
    if (platform or sys.platform) != "win32":
        return "REG"

    system32 = ntpath.join(resolve_system_root(system_root), "system32")
    reg_exe = ntpath.join(system32, "reg.exe")
    if utf8:
        return f"{ntpath.join(system32, 'chcp.com')} {UTF8_CODE_PAGE} | {reg_exe}"
    return reg_exe


def convert_arch(arch: str) -> str:
    """Convert x86/x64 to the 32/64 of /reg:"""
    if arch == ARCH_X64:
        return "64"
    if arch == ARCH_X86:
        return "32"
    raise ConfigError(
        f"illegal architecture: {arch} (use x86 or x64)", details={"arch": arch}
    )


def arch_switch(arch: Optional[str]) -> List[str]:
    if not arch:
        return []
    return ["/reg:" + convert_arch(arch)]


def name_selector(name: Optional[str]) -> List[str]:
    """``/ve`` for the default value, ``/v <name>`` otherwise"""
    if not name:
        return ["/ve"]
    return ["/v", name]


def build_command(
    verb: str,
    registry: "Registry",
    *extra: str,
    system_root: Optional[str] = None,
    platform: Optional[str] = None,
) -> RegCommand:
    """
    Build the reg.exe invocation for ``verb`` against ``registry``.

    Args:
        verb: QUERY, ADD or DELETE
        registry: Key descriptor supplying path, arch and utf8 mode
        *extra: Verb-specific switches placed after the path
        system_root: Windows directory override
        platform: sys.platform override

    Raises:
        ConfigError: If the descriptor carries an unknown architecture
    """
    args = [verb, registry.path, *extra, *arch_switch(registry.arch)]
    return RegCommand(
        verb=verb,
        executable=get_reg_exe_path(registry.utf8, system_root, platform),
        args=tuple(args),
        shell=registry.utf8,
    )


def query_command(registry: "Registry", **kwargs) -> RegCommand:
    return build_command(QUERY, registry, **kwargs)


def get_command(registry: "Registry", name: Optional[str], **kwargs) -> RegCommand:
    return build_command(QUERY, registry, *name_selector(name), **kwargs)


def validate_type(type: str):
    """Reject anything but the seven value type tokens"""
    if type not in REG_TYPES:
        raise ValidationError(
            f"illegal type specified: {type!r} (use one of {', '.join(REG_TYPES)})",
            field="type",
            value=type,
        )


def set_command(
    registry: "Registry", name: Optional[str], type: str, value, **kwargs
) -> RegCommand:
    validate_type(type)
    return build_command(
        ADD,
        registry,
        *name_selector(name),
        "/t",
        type,
        "/d",
        str(value),
        "/f",
        **kwargs,
    )


def remove_command(registry: "Registry", name: Optional[str], **kwargs) -> RegCommand:
    return build_command(DELETE, registry, "/f", *name_selector(name), **kwargs)


def clear_command(registry: "Registry", **kwargs) -> RegCommand:
    return build_command(DELETE, registry, "/f", "/va", **kwargs)


def destroy_command(registry: "Registry", **kwargs) -> RegCommand:
    return build_command(DELETE, registry, "/f", **kwargs)


def create_command(registry: "Registry", **kwargs) -> RegCommand:
    return build_command(ADD, registry, "/f", **kwargs)
