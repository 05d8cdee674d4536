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
"""Tests for the asyncio executor adapter."""

from __future__ import annotations

import asyncio
import threading

import pytest

from aiocompat.kernel.exceptions import SpawnError, TaskAbortedError, TaskError
from aiocompat.task.adapters.asyncio_executor import AsyncIOExecutor, AsyncIOTaskHandle
from aiocompat.task.ports.outbound import ExecutorPort, TaskHandlePort


async def add(a: int, b: int) -> int:
    await asyncio.sleep(0)
    return a + b


class TestAsyncIOExecutorConformance:
    def test_implements_executor_port(self) -> None:
        executor = AsyncIOExecutor()
        assert isinstance(executor, ExecutorPort)
        assert executor.backend == "asyncio"

    @pytest.mark.asyncio
    async def test_handle_implements_task_handle_port(self) -> None:
        handle = AsyncIOExecutor().spawn(add, 1, 1)
        assert isinstance(handle, TaskHandlePort)
        assert AsyncIOTaskHandle.observes_external_cancellation is True
        await handle


class TestSpawn:
    @pytest.mark.asyncio
    async def test_round_trip(self) -> None:
        executor = AsyncIOExecutor()
        handle = executor.spawn(add, 2, 2)
        assert await handle == 4

    @pytest.mark.asyncio
    async def test_result_matches_inline_call(self) -> None:
        executor = AsyncIOExecutor()
        assert await executor.spawn(add, 20, 22) == await add(20, 22)

    @pytest.mark.asyncio
    async def test_spawn_with_handle(self) -> None:
        executor = AsyncIOExecutor()
        assert await executor.spawn_with_handle(add, 3, 4) == 7

    @pytest.mark.asyncio
    async def test_task_exception_reraised_unchanged(self) -> None:
        error = ValueError("bad value")

        async def fail() -> None:
            raise error

        handle = AsyncIOExecutor().spawn(fail)
        with pytest.raises(ValueError) as info:
            await handle
        assert info.value is error

    @pytest.mark.asyncio
    async def test_done(self) -> None:
        event = asyncio.Event()

        async def wait() -> str:
            await event.wait()
            return "done"

        handle = AsyncIOExecutor().spawn(wait)
        assert handle.done() is False
        event.set()
        assert await handle == "done"
        assert handle.done() is True

    @pytest.mark.asyncio
    async def test_second_await_rejected(self) -> None:
        handle = AsyncIOExecutor().spawn(add, 1, 2)
        assert await handle == 3
        with pytest.raises(TaskError) as info:
            await handle
        assert info.value.code == "HANDLE_CONSUMED"

    def test_spawn_without_running_loop(self) -> None:
        with pytest.raises(SpawnError) as info:
            AsyncIOExecutor().spawn(add, 1, 2)
        assert info.value.code == "NO_RUNNING_LOOP"

    @pytest.mark.asyncio
    async def test_spawn_after_stop(self) -> None:
        executor = AsyncIOExecutor()
        await executor.stop()
        with pytest.raises(SpawnError) as info:
            executor.spawn(add, 1, 2)
        assert info.value.code == "EXECUTOR_STOPPED"

        await executor.start()
        assert await executor.spawn(add, 1, 2) == 3


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_surfaces_as_task_aborted(self) -> None:
        handle = AsyncIOExecutor().spawn(asyncio.sleep, 10)
        await asyncio.sleep(0)
        assert handle.cancel() is True
        with pytest.raises(TaskAbortedError):
            await handle

    @pytest.mark.asyncio
    async def test_external_cancellation_is_observed(self) -> None:
        executor = AsyncIOExecutor()
        handle = executor.spawn(asyncio.sleep, 10)
        (task,) = executor._tasks
        task.cancel()
        with pytest.raises(TaskAbortedError):
            await handle

    @pytest.mark.asyncio
    async def test_cancel_after_completion_returns_false(self) -> None:
        handle = AsyncIOExecutor().spawn(add, 1, 1)
        await asyncio.sleep(0.01)
        assert handle.cancel() is False
        assert await handle == 2

    @pytest.mark.asyncio
    async def test_cancelling_the_awaiter_leaves_task_running(self) -> None:
        release = asyncio.Event()

        async def slow() -> str:
            await release.wait()
            return "finished"

        executor = AsyncIOExecutor()
        handle = executor.spawn(slow)
        (task,) = executor._tasks

        async def join() -> str:
            return await handle

        awaiter = asyncio.create_task(join())
        await asyncio.sleep(0)
        awaiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await awaiter

        release.set()
        assert await task == "finished"


class TestDropSemantics:
    @pytest.mark.asyncio
    async def test_dropped_handle_keeps_running_and_stop_waits(self) -> None:
        executor = AsyncIOExecutor()
        results: list[int] = []

        async def append_after_delay(value: int) -> None:
            await asyncio.sleep(0.01)
            results.append(value)

        for value in (1, 2, 3):
            executor.spawn(append_after_delay, value)

        await executor.stop()
        assert sorted(results) == [1, 2, 3]
        assert not executor._tasks

    @pytest.mark.asyncio
    async def test_context_manager_waits(self) -> None:
        results: list[str] = []

        async def work() -> None:
            await asyncio.sleep(0.01)
            results.append("done")

        async with AsyncIOExecutor() as executor:
            executor.spawn(work)
        assert results == ["done"]


class TestSpawnBlocking:
    @pytest.mark.asyncio
    async def test_runs_off_the_loop_thread(self) -> None:
        executor = AsyncIOExecutor(max_blocking_workers=2)
        main_thread = threading.get_ident()

        def which_thread() -> int:
            return threading.get_ident()

        worker_thread = await executor.spawn_blocking(which_thread)
        assert worker_thread != main_thread
        await executor.stop()

    @pytest.mark.asyncio
    async def test_passes_arguments(self) -> None:
        executor = AsyncIOExecutor()
        assert await executor.spawn_blocking(sum, [1, 2, 3]) == 6
        await executor.stop()

    @pytest.mark.asyncio
    async def test_exception_reraised(self) -> None:
        executor = AsyncIOExecutor()

        def boom() -> None:
            raise RuntimeError("blocking failure")

        with pytest.raises(RuntimeError, match="blocking failure"):
            await executor.spawn_blocking(boom)
        await executor.stop()

    @pytest.mark.asyncio
    async def test_stop_releases_pool(self) -> None:
        executor = AsyncIOExecutor()
        await executor.spawn_blocking(int, "5")
        assert executor._blocking_pool is not None
        await executor.stop()
        assert executor._blocking_pool is None

    @pytest.mark.asyncio
    async def test_stop_keeps_loop_running_while_cancelled_call_finishes(self) -> None:
        executor = AsyncIOExecutor()
        started = threading.Event()
        release = threading.Event()

        def wait_for_release() -> None:
            started.set()
            release.wait(5)

        handle = executor.spawn_blocking(wait_for_release)
        await asyncio.to_thread(started.wait, 5)
        assert handle.cancel() is True

        stopping = asyncio.create_task(executor.stop())
        ticks = 0
        for _ in range(5):
            await asyncio.sleep(0.01)
            ticks += 1
        assert ticks == 5
        assert not stopping.done()

        release.set()
        await asyncio.wait_for(stopping, 5)
        assert executor._blocking_pool is None
