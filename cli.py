# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""regshell CLI - Windows registry access through reg.exe"""

import asyncio
import json
import sys
from contextlib import contextmanager
from pathlib import Path

import click

# Force UTF-8 encoding for Windows
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from regshell import __version__
from regshell.core.config import get_config, reload_config
from regshell.core.constants import ARCHS, REG_SZ, REG_TYPES
from regshell.core.exceptions import (
    ConfigError,
    ProcessUncleanExitError,
    ValidationError,
)
from regshell.core.logger import configure_from_config
from regshell.core.registry import Registry

EXIT_USAGE = 2


@contextmanager
def _handle_errors():
    """Map library errors to messages and exit codes"""
    try:
        yield
    except ProcessUncleanExitError as e:
        click.echo(f"[-] {e}", err=True)
        sys.exit(e.code or 1)
    except (ConfigError, ValidationError) as e:
        click.echo(f"[-] Error: {e}", err=True)
        sys.exit(EXIT_USAGE)
    except OSError as e:
        click.echo(f"[-] Could not run reg.exe: {e}", err=True)
        sys.exit(1)


def _open(key: str, arch, utf8) -> Registry:
    settings = get_config().registry
    return Registry.from_path(
        key,
        arch=arch or settings.arch,
        utf8=settings.utf8 if utf8 is None else utf8,
    )


def _emit(data, output: str, text: str):
    if output == "json":
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    elif text:
        click.echo(text)


def key_options(func):
    """Options shared by every command that addresses a key"""
    func = click.option(
        "--output", "-o", type=click.Choice(["text", "json"]), default="text"
    )(func)
    func = click.option(
        "--utf8/--no-utf8", default=None, help="Switch reg.exe to code page 65001"
    )(func)
    func = click.option(
        "--arch", type=click.Choice(list(ARCHS)), help="Registry view (/reg:32 or /reg:64)"
    )(func)
    return click.argument("key")(func)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Config file used instead of ./.regshell.yaml",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Override the configured log level",
)
@click.option("--debug", is_flag=True, help="Trace reg.exe command lines and output")
def cli(config_file, log_level, debug):
    """regshell - read and write the Windows registry through reg.exe.

    KEY is a registry path such as HKCU\\Software\\MyApp,
    HKEY_LOCAL_MACHINE\\SOFTWARE or \\\\host\\HKLM\\SOFTWARE.
    """
    with _handle_errors():
        settings = reload_config(Path(config_file)) if config_file else get_config()

    configure_from_config(settings, level=log_level, debug_output=debug)


@cli.command()
@key_options
def values(key, arch, utf8, output):
    """List the values of KEY."""
    with _handle_errors():
        items = asyncio.run(_open(key, arch, utf8).avalues())

    _emit(
        [item.to_dict() for item in items],
        output,
        "\n".join(f"{item.name}\t{item.type}\t{item.value}" for item in items),
    )


@cli.command()
@key_options
def keys(key, arch, utf8, output):
    """List the direct subkeys of KEY."""
    with _handle_errors():
        subkeys = asyncio.run(_open(key, arch, utf8).akeys())

    _emit(
        [{"path": k.path, "hive": k.hive, "key": k.key} for k in subkeys],
        output,
        "\n".join(k.path for k in subkeys),
    )


@cli.command()
@key_options
@click.argument("name", default="")
def get(key, name, arch, utf8, output):
    """Show value NAME of KEY (the default value if NAME is omitted)."""
    with _handle_errors():
        item = asyncio.run(_open(key, arch, utf8).aget(name))

    if item is None:
        click.echo(f"[-] No value could be read from {key}", err=True)
        sys.exit(1)

    _emit(item.to_dict(), output, item.value)


@cli.command(name="set")
@key_options
@click.argument("name")
@click.option("--type", "-t", "value_type", type=click.Choice(list(REG_TYPES)), default=REG_SZ)
@click.option("--data", "-d", required=True, help="Value data as reg.exe expects it")
def set_value(key, name, value_type, data, arch, utf8, output):
    """Set value NAME of KEY ("" for the default value)."""
    with _handle_errors():
        registry = _open(key, arch, utf8)
        asyncio.run(registry.aset(name, value_type, data))

    _emit(
        {"path": registry.path, "name": name, "type": value_type, "value": data},
        output,
        f"[+] Set {registry.path} {name or '(Default)'}",
    )


@cli.command()
@key_options
@click.argument("name", default="")
def remove(key, name, arch, utf8, output):
    """Remove value NAME of KEY (the default value if NAME is omitted)."""
    with _handle_errors():
        registry = _open(key, arch, utf8)
        asyncio.run(registry.aremove(name))

    _emit(
        {"path": registry.path, "name": name, "removed": True},
        output,
        f"[+] Removed {registry.path} {name or '(Default)'}",
    )


@cli.command()
@key_options
@click.confirmation_option(prompt="Remove every value of this key?")
def clear(key, arch, utf8, output):
    """Remove all values of KEY, keeping its subkeys."""
    with _handle_errors():
        registry = _open(key, arch, utf8)
        asyncio.run(registry.aclear())

    _emit({"path": registry.path, "cleared": True}, output, f"[+] Cleared {registry.path}")


@cli.command()
@key_options
@click.confirmation_option(prompt="Delete this key and all of its subkeys?")
def destroy(key, arch, utf8, output):
    """Delete KEY and all of its subkeys."""
    with _handle_errors():
        registry = _open(key, arch, utf8)
        asyncio.run(registry.adestroy())

    _emit({"path": registry.path, "destroyed": True}, output, f"[+] Deleted {registry.path}")


@cli.command()
@key_options
def create(key, arch, utf8, output):
    """Create KEY (no-op if it exists)."""
    with _handle_errors():
        registry = _open(key, arch, utf8)
        asyncio.run(registry.acreate())

    _emit({"path": registry.path, "created": True}, output, f"[+] Created {registry.path}")


@cli.command()
@key_options
@click.option("--value", "-v", "name", default=None, help="Check for this value instead of the key")
def exists(key, name, arch, utf8, output):
    """Exit 0 if KEY (or its value NAME) exists, 1 otherwise."""
    with _handle_errors():
        registry = _open(key, arch, utf8)
        if name is None:
            found = asyncio.run(registry.akey_exists())
        else:
            found = asyncio.run(registry.avalue_exists(name))

    _emit(
        {"path": registry.path, "name": name, "exists": found},
        output,
        "true" if found else "false",
    )
    sys.exit(0 if found else 1)


if __name__ == "__main__":
    cli()
