# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
reg.exe process execution.

One call to ``run_command`` is one child process: stdin closed, stdout and
stderr piped and drained to EOF, and the outcome built only after the
process has exited. A failure to start the process is reported in the
outcome instead of an exit code, never both.
"""

import asyncio
import locale
import logging
from dataclasses import dataclass
from typing import Optional

from regshell.core.commands import RegCommand
from regshell.core.exceptions import ProcessUncleanExitError

logger = logging.getLogger("regshell.process")


@dataclass(frozen=True)
class ProcessOutcome:
    """Exit code and captured output of one reg.exe run"""

    verb: str
    exit_code: Optional[int]
    stdout: str = ""
    stderr: str = ""
    spawn_error: Optional[OSError] = None

    @property
    def success(self) -> bool:
        return self.spawn_error is None and self.exit_code == 0

    def check(self) -> "ProcessOutcome":
        """
        Return self if reg.exe ran and exited with 0.

        Raises:
            OSError: The spawn failure, unchanged
            ProcessUncleanExitError: On a non-zero exit code
        """
        if self.success:
            return self
        if self.spawn_error is not None:
            raise self.spawn_error
        raise ProcessUncleanExitError.from_output(
            self.verb, self.exit_code, self.stdout, self.stderr
        )


def resolve_encoding(utf8: bool, encoding: Optional[str] = None) -> str:
    """Codec for reg.exe output: UTF-8 in code page 65001 mode, else configured or locale"""
    if utf8:
        return "utf-8"
    return encoding or locale.getpreferredencoding(False) or "utf-8"


async def _spawn(command: RegCommand) -> asyncio.subprocess.Process:
    if command.shell:
        return await asyncio.create_subprocess_shell(
            command.command_line,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    return await asyncio.create_subprocess_exec(
        *command.argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )


async def run_command(
    command: RegCommand, encoding: Optional[str] = None
) -> ProcessOutcome:
    """
    Run ``command`` and collect its outcome.

    Args:
        command: The resolved reg.exe invocation
        encoding: Output codec outside UTF-8 mode (defaults to the locale's)

    Returns:
        ProcessOutcome with either an exit code or a spawn error
    """
    logger.debug(f"Running command: {command.command_line}")

    try:
        process = await _spawn(command)
    except OSError as e:
        logger.debug(f"{command.verb} could not be started: {e}")
        return ProcessOutcome(verb=command.verb, exit_code=None, spawn_error=e)

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        # Reap the child so its pipes and handle are released
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
        raise

    codec = resolve_encoding(command.shell, encoding)
    outcome = ProcessOutcome(
        verb=command.verb,
        exit_code=process.returncode,
        stdout=stdout.decode(codec, errors="replace"),
        stderr=stderr.decode(codec, errors="replace"),
    )

    if not outcome.success:
        logger.debug(f"process exited with code {outcome.exit_code}")
    return outcome
