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
"""AsyncIO executor adapter.

Tasks run on the running event loop via ``loop.create_task``; blocking calls
run on a private ``ThreadPoolExecutor`` via ``loop.run_in_executor``.

Drop semantics: a task whose handle is dropped is detached. It keeps running
until it finishes; the executor holds a strong reference so it is not
garbage-collected mid-flight, and :meth:`AsyncIOExecutor.stop` waits for it.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable, Generator
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType
from typing import Any, ClassVar, Generic, TypeVar

import structlog

from aiocompat.kernel.exceptions import SpawnError, TaskAbortedError, TaskError

T = TypeVar("T")

logger = structlog.get_logger("aiocompat.task.asyncio")


class AsyncIOTaskHandle(Generic[T]):
    """Handle over an ``asyncio.Task`` or an executor future.

    Every cancellation of the underlying future is observable: awaiting the
    handle raises ``TaskAbortedError`` whether the task was cancelled through
    :meth:`cancel` or by anyone else holding the task.
    """

    observes_external_cancellation: ClassVar[bool] = True

    def __init__(self, future: asyncio.Future[T]) -> None:
        self._future = future
        self._joined = False

    def __await__(self) -> Generator[Any, None, T]:
        return self._join().__await__()

    async def _join(self) -> T:
        if self._joined:
            raise TaskError("Task handle has already been awaited", code="HANDLE_CONSUMED")
        self._joined = True
        try:
            # Shielded so that cancelling the awaiter leaves the task running.
            return await asyncio.shield(self._future)
        except asyncio.CancelledError as exc:
            if self._future.cancelled():
                raise TaskAbortedError("Task was cancelled before completing", code="TASK_ABORTED") from exc
            raise

    def cancel(self) -> bool:
        return self._future.cancel()

    def done(self) -> bool:
        return self._future.done()


class AsyncIOExecutor:
    """Executor for the asyncio runtime.

    Needs no start-up: spawning works from any coroutine running on an event
    loop. After :meth:`stop` the executor refuses new work until
    :meth:`start` is called again.
    """

    def __init__(self, max_blocking_workers: int = 16) -> None:
        self._max_blocking_workers = max_blocking_workers
        self._tasks: set[asyncio.Future[Any]] = set()
        self._blocking_pool: ThreadPoolExecutor | None = None
        self._stopped = False

    @property
    def backend(self) -> str:
        return "asyncio"

    def _loop(self) -> asyncio.AbstractEventLoop:
        if self._stopped:
            raise SpawnError("Executor has been stopped", code="EXECUTOR_STOPPED")
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise SpawnError("No running asyncio event loop", code="NO_RUNNING_LOOP") from exc

    def _track(self, future: asyncio.Future[T]) -> AsyncIOTaskHandle[T]:
        self._tasks.add(future)
        future.add_done_callback(self._tasks.discard)
        return AsyncIOTaskHandle(future)

    def spawn(self, async_fn: Callable[..., Awaitable[T]], *args: Any) -> AsyncIOTaskHandle[T]:
        loop = self._loop()
        task = loop.create_task(async_fn(*args))  # type: ignore[arg-type]
        logger.debug("task_spawned", backend="asyncio", task=task.get_name())
        return self._track(task)

    def spawn_with_handle(self, async_fn: Callable[..., Awaitable[T]], *args: Any) -> AsyncIOTaskHandle[T]:
        return self.spawn(async_fn, *args)

    def spawn_blocking(self, func: Callable[..., T], *args: Any) -> AsyncIOTaskHandle[T]:
        """Run *func* on the blocking pool.

        Cancelling the handle only prevents a call that has not started yet;
        a running call always runs to completion in its thread.
        """
        loop = self._loop()
        if self._blocking_pool is None:
            self._blocking_pool = ThreadPoolExecutor(
                max_workers=self._max_blocking_workers,
                thread_name_prefix="aiocompat-blocking",
            )
        future = loop.run_in_executor(self._blocking_pool, functools.partial(func, *args))
        logger.debug("blocking_task_spawned", backend="asyncio", func=getattr(func, "__qualname__", repr(func)))
        return self._track(future)

    async def start(self) -> None:
        self._stopped = False

    async def stop(self) -> None:
        """Wait for every in-flight task, then release the blocking pool.

        Blocking calls whose handles were cancelled may still be running; the
        pool is shut down on a worker thread so the loop stays responsive.
        """
        self._stopped = True
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self._blocking_pool is not None:
            pool, self._blocking_pool = self._blocking_pool, None
            await asyncio.to_thread(pool.shutdown, wait=True)
        logger.debug("executor_stopped", backend="asyncio")

    async def __aenter__(self) -> AsyncIOExecutor:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
