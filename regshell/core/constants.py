# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Hive ids, value type tokens and registry views understood by reg.exe"""

# Registry hive ids
HKLM = "HKLM"
HKCU = "HKCU"
HKCR = "HKCR"
HKU = "HKU"
HKCC = "HKCC"
HIVES = (HKLM, HKCU, HKCR, HKU, HKCC)

# Long hive names as printed by REG QUERY
HIVE_NAMES = {
    "HKEY_LOCAL_MACHINE": HKLM,
    "HKEY_CURRENT_USER": HKCU,
    "HKEY_CLASSES_ROOT": HKCR,
    "HKEY_USERS": HKU,
    "HKEY_CURRENT_CONFIG": HKCC,
}

# Registry value types
REG_SZ = "REG_SZ"
REG_MULTI_SZ = "REG_MULTI_SZ"
REG_EXPAND_SZ = "REG_EXPAND_SZ"
REG_DWORD = "REG_DWORD"
REG_QWORD = "REG_QWORD"
REG_BINARY = "REG_BINARY"
REG_NONE = "REG_NONE"
REG_TYPES = (
    REG_SZ,
    REG_MULTI_SZ,
    REG_EXPAND_SZ,
    REG_DWORD,
    REG_QWORD,
    REG_BINARY,
    REG_NONE,
)

# Name of a key's default value
DEFAULT_VALUE = ""

# Registry views (/reg:32, /reg:64)
ARCH_X86 = "x86"
ARCH_X64 = "x64"
ARCHS = (ARCH_X86, ARCH_X64)
