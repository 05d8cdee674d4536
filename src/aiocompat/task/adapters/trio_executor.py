# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Trio executor adapter.

Trio only runs tasks inside a nursery. The executor either wraps a nursery
the caller already owns, or opens its own on ``async with executor`` /
:meth:`TrioExecutor.start`.

Drop semantics: a task whose handle is dropped keeps running inside the
nursery. It never outlives it: leaving the executor scope waits for the task,
and cancelling that scope cancels it.

Capability gap: a cancellation arriving from an enclosing cancel scope also
cancels whoever awaits the handle, so ``TaskAbortedError`` is delivered only
for :meth:`TrioTaskHandle.cancel`.
"""

from __future__ import annotations

import enum
import functools
from collections.abc import Awaitable, Callable, Generator
from contextlib import AsyncExitStack
from types import TracebackType
from typing import Any, ClassVar, Generic, TypeVar

import structlog
import trio

from aiocompat.kernel.exceptions import SpawnError, TaskAbortedError, TaskError

T = TypeVar("T")

logger = structlog.get_logger("aiocompat.task.trio")


class _Outcome(enum.Enum):
    PENDING = enum.auto()
    VALUE = enum.auto()
    ERROR = enum.auto()
    ABORTED = enum.auto()


class TrioTaskHandle(Generic[T]):
    """Handle over a task running in a trio nursery.

    The task runs inside its own cancel scope so :meth:`cancel` affects only
    this task. Exceptions raised by the task are captured here instead of
    crashing the nursery, and re-raised to whoever awaits the handle.
    """

    observes_external_cancellation: ClassVar[bool] = False

    def __init__(self) -> None:
        self._finished = trio.Event()
        self._cancel_scope = trio.CancelScope()
        self._outcome = _Outcome.PENDING
        self._value: T | None = None
        self._error: BaseException | None = None
        self._joined = False

    async def _run(self, async_fn: Callable[..., Awaitable[T]], *args: Any) -> None:
        try:
            with self._cancel_scope:
                try:
                    self._value = await async_fn(*args)
                    self._outcome = _Outcome.VALUE
                except Exception as exc:
                    self._error = exc
                    self._outcome = _Outcome.ERROR
        finally:
            if self._outcome is _Outcome.PENDING:
                self._outcome = _Outcome.ABORTED
            self._finished.set()

    async def _run_sync(self, limiter: trio.CapacityLimiter, func: Callable[..., T], *args: Any) -> None:
        await self._run(functools.partial(trio.to_thread.run_sync, limiter=limiter), func, *args)

    def __await__(self) -> Generator[Any, None, T]:
        return self._join().__await__()

    async def _join(self) -> T:
        if self._joined:
            raise TaskError("Task handle has already been awaited", code="HANDLE_CONSUMED")
        self._joined = True
        await self._finished.wait()
        if self._outcome is _Outcome.VALUE:
            return self._value  # type: ignore[return-value]
        if self._outcome is _Outcome.ERROR:
            assert self._error is not None
            raise self._error
        raise TaskAbortedError("Task was cancelled before completing", code="TASK_ABORTED")

    def cancel(self) -> bool:
        if self._finished.is_set():
            return False
        self._cancel_scope.cancel()
        return True

    def done(self) -> bool:
        return self._finished.is_set()


class TrioExecutor:
    """Executor for the trio runtime.

    Args:
        nursery: An open nursery to spawn into. When omitted, the executor
            opens its own nursery in :meth:`start` (or ``async with``);
            ``start``/``stop`` must then be called from the same task.
        max_blocking_workers: Threads allowed to run ``spawn_blocking`` calls
            at once.
    """

    def __init__(self, nursery: trio.Nursery | None = None, max_blocking_workers: int = 16) -> None:
        self._nursery = nursery
        self._owns_nursery = nursery is None
        self._max_blocking_workers = max_blocking_workers
        self._limiter: trio.CapacityLimiter | None = None
        self._exit_stack: AsyncExitStack | None = None

    @property
    def backend(self) -> str:
        return "trio"

    def _start_soon(self, async_fn: Callable[..., Awaitable[Any]], *args: Any, name: str | None = None) -> None:
        if self._nursery is None:
            raise SpawnError(
                "No open nursery: use 'async with TrioExecutor()' or pass a nursery",
                code="NO_NURSERY",
            )
        try:
            self._nursery.start_soon(async_fn, *args, name=name)
        except RuntimeError as exc:
            raise SpawnError(f"Nursery refused the task: {exc}", code="NURSERY_CLOSED") from exc

    def spawn(self, async_fn: Callable[..., Awaitable[T]], *args: Any) -> TrioTaskHandle[T]:
        handle: TrioTaskHandle[T] = TrioTaskHandle()
        name = getattr(async_fn, "__qualname__", None)
        self._start_soon(handle._run, async_fn, *args, name=name)
        logger.debug("task_spawned", backend="trio", task=name)
        return handle

    def spawn_with_handle(self, async_fn: Callable[..., Awaitable[T]], *args: Any) -> TrioTaskHandle[T]:
        return self.spawn(async_fn, *args)

    def spawn_blocking(self, func: Callable[..., T], *args: Any) -> TrioTaskHandle[T]:
        """Run *func* in a worker thread.

        The thread is never abandoned: cancelling the handle takes effect only
        once *func* returns.
        """
        if self._limiter is None:
            self._limiter = trio.CapacityLimiter(self._max_blocking_workers)
        handle: TrioTaskHandle[T] = TrioTaskHandle()
        name = getattr(func, "__qualname__", None)
        self._start_soon(handle._run_sync, self._limiter, func, *args, name=name)
        logger.debug("blocking_task_spawned", backend="trio", func=name)
        return handle

    async def start(self) -> None:
        if not self._owns_nursery or self._exit_stack is not None:
            return
        stack = AsyncExitStack()
        self._nursery = await stack.enter_async_context(trio.open_nursery())
        self._exit_stack = stack

    async def stop(self) -> None:
        """Wait for every task in the owned nursery, then close it."""
        await self._close(None, None, None)

    async def _close(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        stack = self._exit_stack
        if stack is None:
            return False
        self._exit_stack = None
        try:
            return await stack.__aexit__(exc_type, exc_val, exc_tb)
        finally:
            self._nursery = None
            logger.debug("executor_stopped", backend="trio")

    async def __aenter__(self) -> TrioExecutor:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        return await self._close(exc_type, exc_val, exc_tb)
