# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Shared fixtures: isolated configuration and a scripted stand-in for reg.exe"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Tuple
from unittest.mock import patch

import pytest

from regshell.core import config as config_module
from regshell.core import logger as logger_module
from regshell.core.config import RegShellConfig


@pytest.fixture(autouse=True)
def default_config():
    """Every test starts from default configuration, ignoring files and env"""
    config_module.set_config(RegShellConfig())
    yield
    config_module.set_config(None)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger(logger_module.ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    logger_module._logger = None


class FakeProcess:
    """Quacks like asyncio.subprocess.Process for run_command"""

    def __init__(self, exit_code: int = 0, stdout: bytes = b"", stderr: bytes = b""):
        self.returncode: Optional[int] = None
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.killed = False
        self.hang = False

    async def communicate(self):
        if self.hang:
            await asyncio.sleep(3600)
        self.returncode = self.exit_code
        return self.stdout, self.stderr

    async def wait(self):
        if self.returncode is None:
            self.returncode = -9 if self.killed else self.exit_code
        return self.returncode

    def kill(self):
        self.killed = True


Response = Tuple[int, str, str]


class FakeReg:
    """
    Records every spawn and answers with scripted responses.

    Responses are consumed in order; when none are queued, ``handler`` (if
    set) computes one from the argument list, else the process exits 0 with
    no output.
    """

    def __init__(self):
        self.calls: List[Any] = []
        self.kwargs: List[dict] = []
        self.processes: List[FakeProcess] = []
        self.responses: List[Response] = []
        self.handler: Optional[Callable[[List[str]], Response]] = None
        self.spawn_error: Optional[OSError] = None
        self.hang = False
        self.encoding = "utf-8"

    def respond(self, exit_code: int = 0, stdout: str = "", stderr: str = ""):
        self.responses.append((exit_code, stdout, stderr))

    def _next(self, args: List[str]) -> FakeProcess:
        if self.spawn_error is not None:
            raise self.spawn_error
        if self.responses:
            exit_code, stdout, stderr = self.responses.pop(0)
        elif self.handler is not None:
            exit_code, stdout, stderr = self.handler(args)
        else:
            exit_code, stdout, stderr = 0, "", ""
        process = FakeProcess(
            exit_code, stdout.encode(self.encoding), stderr.encode(self.encoding)
        )
        process.hang = self.hang
        self.processes.append(process)
        return process

    async def exec(self, *argv, **kwargs):
        self.calls.append(list(argv))
        self.kwargs.append(kwargs)
        return self._next(list(argv[1:]))

    async def shell(self, command_line, **kwargs):
        self.calls.append(command_line)
        self.kwargs.append(kwargs)
        return self._next(command_line.split(" | ")[-1].split()[1:])

    @property
    def spawned(self) -> int:
        return len(self.calls)


@pytest.fixture
def fake_reg():
    """Patch asyncio's subprocess factories with a FakeReg"""
    reg = FakeReg()
    with patch("asyncio.create_subprocess_exec", side_effect=reg.exec), patch(
        "asyncio.create_subprocess_shell", side_effect=reg.shell
    ):
        yield reg


class CallbackRecorder:
    """A ``callback(err, result)`` that can be awaited"""

    def __init__(self):
        self.calls: List[Tuple[Optional[BaseException], Any]] = []
        self._event = asyncio.Event()

    def __call__(self, err, result):
        self.calls.append((err, result))
        self._event.set()

    async def wait(self, timeout: float = 5.0):
        await asyncio.wait_for(self._event.wait(), timeout)
        # Give a second, erroneous invocation the chance to show up
        await asyncio.sleep(0.01)
        return self.calls[0]


@pytest.fixture
def recorder():
    return CallbackRecorder()
