# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

r"""
REG QUERY output parsing.

The output is a loose text table whose header lines differ between Windows
versions, so parsing is two steps: a header policy picks the candidate lines,
then each candidate is matched against one of two patterns.

    values  skip the first line (it echoes the queried key)
    keys    keep every line; the echoed key is filtered by comparison
    get     keep only the last line (XP prints an extra header)

Value line:   <name>    <TYPE>    <value>
Subkey line:  [\\host\]HKEY_LOCAL_MACHINE\<key path>

Lines matching neither pattern are skipped.
"""

import logging
import re
from typing import TYPE_CHECKING, List, NamedTuple, Optional

from regshell.core.constants import HIVE_NAMES, REG_TYPES
from regshell.core.exceptions import ConfigError
from regshell.core.items import RegistryItem

if TYPE_CHECKING:
    from regshell.core.registry import Registry

logger = logging.getLogger("regshell.parser")

ITEM_PATTERN = re.compile(
    r"^(.*?)\s+(" + "|".join(REG_TYPES) + r")(?:\s+(.*))?$"
)

PATH_PATTERN = re.compile(
    r"^(?:\\\\[^\\]+\\)?(" + "|".join(HIVE_NAMES) + r")((?:\\.*)?)$"
)


class ItemMatch(NamedTuple):
    name: str
    type: str
    value: str


def split_lines(stdout: str) -> List[str]:
    """Trimmed, non-empty lines"""
    lines = []
    for raw in stdout.split("\n"):
        line = raw.strip()
        if line:
            logger.debug(line)
            lines.append(line)
    return lines


def skip_header(lines: List[str]) -> List[str]:
    return lines[1:]


def last_line(lines: List[str]) -> Optional[str]:
    return lines[-1] if lines else None


def match_item(line: str) -> Optional[ItemMatch]:
    match = ITEM_PATTERN.match(line)
    if not match:
        return None
    return ItemMatch(
        name=match.group(1).strip(),
        type=match.group(2),
        value=match.group(3) or "",
    )


def match_path(line: str) -> Optional[str]:
    """Key path (without hive) of a subkey line, or None"""
    match = PATH_PATTERN.match(line)
    if not match:
        return None
    return match.group(2)


def make_item(registry: "Registry", match: ItemMatch) -> RegistryItem:
    return RegistryItem(
        host=registry.host,
        hive=registry.hive,
        key=registry.key,
        name=match.name,
        type=match.type,
        value=match.value,
        arch=registry.arch,
    )


def parse_values(stdout: str, registry: "Registry") -> List[RegistryItem]:
    """Values of ``registry`` in enumeration order"""
    result = []
    for line in skip_header(split_lines(stdout)):
        match = match_item(line)
        if match is None:
            logger.debug(f"Skipping non-value line: {line}")
            continue
        result.append(make_item(registry, match))
    return result


def parse_keys(stdout: str, registry: "Registry") -> List["Registry"]:
    """Direct subkeys of ``registry``, excluding the echoed key itself"""
    own_key = registry.key.casefold()
    result = []
    for line in split_lines(stdout):
        key = match_path(line)
        if not key or key.casefold() == own_key:
            continue
        try:
            result.append(registry.with_key(key))
        except ConfigError as e:
            logger.debug(f"Skipping subkey line {line!r}: {e}")
    return result


def parse_item(stdout: str, registry: "Registry") -> Optional[RegistryItem]:
    """The single value printed by REG QUERY /v or /ve, if any"""
    line = last_line(split_lines(stdout))
    if line is None:
        return None
    match = match_item(line)
    if match is None:
        logger.debug(f"Skipping non-value line: {line}")
        return None
    return make_item(registry, match)
