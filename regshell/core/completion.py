# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Single-shot completion callbacks for asynchronous registry operations.

An operation runs as an asyncio task; its ``Completion`` moves from RUNNING
to COMPLETED once and invokes the caller's ``callback(error, result)`` on
that transition only. A cancelled task completes without a callback.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger("regshell.completion")

Callback = Callable[[Optional[BaseException], Any], Any]

# Strong references to in-flight tasks; the loop only keeps weak ones
_pending: Set["asyncio.Task[Any]"] = set()


class CompletionState(Enum):
    RUNNING = "running"
    COMPLETED = "completed"


def require_callback(callback: Any):
    """Fail at the call site when no usable callback is given"""
    if not callable(callback):
        raise TypeError("must specify a callback")


class Completion:
    """Delivers one outcome to one callback, exactly once"""

    def __init__(self, callback: Callback, label: str = ""):
        require_callback(callback)
        self.callback = callback
        self.label = label
        self.state = CompletionState.RUNNING

    @property
    def completed(self) -> bool:
        return self.state is CompletionState.COMPLETED

    def resolve(self, result: Any = None) -> bool:
        return self._fire(None, result)

    def reject(self, error: BaseException) -> bool:
        return self._fire(error, None)

    def cancel(self) -> bool:
        """Complete without invoking the callback"""
        if self.completed:
            return False
        self.state = CompletionState.COMPLETED
        logger.debug(f"{self.label} cancelled, no callback")
        return True

    def _fire(self, error: Optional[BaseException], result: Any) -> bool:
        if self.completed:
            logger.debug(f"{self.label} already reported, ignoring late outcome")
            return False
        self.state = CompletionState.COMPLETED

        returned = self.callback(error, result)
        if asyncio.iscoroutine(returned):
            _track(asyncio.ensure_future(returned), self.label)
        return True

    def on_task_done(self, task: "asyncio.Task[Any]"):
        """``add_done_callback`` hook translating the task's end state"""
        if task.cancelled():
            self.cancel()
            return

        error = task.exception()
        if error is not None:
            self.reject(error)
        else:
            self.resolve(task.result())


def _track(task: "asyncio.Task[Any]", label: str):
    _pending.add(task)

    def _done(finished: "asyncio.Task[Any]"):
        _pending.discard(finished)
        if finished.cancelled():
            return
        error = finished.exception()
        if error is not None:
            finished.get_loop().call_exception_handler(
                {
                    "message": f"regshell completion callback for {label} failed",
                    "exception": error,
                    "task": finished,
                }
            )

    task.add_done_callback(_done)


def schedule(
    factory: Callable[[], Awaitable[Any]],
    callback: Callback,
    label: str = "",
) -> "asyncio.Task[Any]":
    """
    Start ``factory()`` on the running loop and report it to ``callback``.

    Raises:
        TypeError: If callback is not callable
        RuntimeError: If no event loop is running in this thread
    """
    completion = Completion(callback, label)
    loop = asyncio.get_running_loop()

    task = loop.create_task(factory())
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    task.add_done_callback(completion.on_task_done)
    return task


def pending_count() -> int:
    """Number of operations and async callbacks still in flight"""
    return len(_pending)
