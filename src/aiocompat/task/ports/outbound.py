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
"""Task capability ports — spawning, blocking offload and result retrieval.

Divergences between backends are part of the contract and are not papered
over:

* Dropping a handle never cancels the task on either backend. AsyncIO
  detaches it completely; Trio keeps it inside the executor's nursery, so
  leaving the executor scope waits for it.
* ``TaskAbortedError`` is always a possible outcome of awaiting a handle.
  Handles whose class sets ``observes_external_cancellation = False`` only
  report it for :meth:`TaskHandlePort.cancel`; a cancellation coming from an
  enclosing scope cancels the awaiting task as well and is never delivered.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Generator
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class TaskHandlePort(Protocol[T_co]):
    """Caller-owned handle to a spawned task, awaitable exactly once."""

    observes_external_cancellation: ClassVar[bool]

    def __await__(self) -> Generator[Any, None, T_co]:
        """Wait for the task and return its value.

        Re-raises the task's own exception unchanged; raises
        ``TaskAbortedError`` if the task was cancelled.
        """
        ...

    def cancel(self) -> bool:
        """Request cancellation. Returns False if the task already finished."""
        ...

    def done(self) -> bool:
        """True once the task has produced a value, raised, or been aborted."""
        ...


@runtime_checkable
class SpawnPort(Protocol):
    """Schedule an async function for concurrent execution."""

    def spawn(self, async_fn: Callable[..., Awaitable[T]], *args: Any) -> TaskHandlePort[T]:
        """Start ``async_fn(*args)`` and return immediately.

        Raises:
            SpawnError: the backend scheduler is not available.
        """
        ...


@runtime_checkable
class SpawnWithHandlePort(Protocol):
    """Spawn with a retrievable result."""

    def spawn_with_handle(self, async_fn: Callable[..., Awaitable[T]], *args: Any) -> TaskHandlePort[T]: ...


@runtime_checkable
class SpawnBlockingPort(Protocol):
    """Offload a synchronous callable to the backend's blocking pool."""

    def spawn_blocking(self, func: Callable[..., T], *args: Any) -> TaskHandlePort[T]: ...


@runtime_checkable
class ExecutorPort(SpawnPort, SpawnWithHandlePort, SpawnBlockingPort, Protocol):
    """A way of running tasks on one backend."""

    @property
    def backend(self) -> str:
        """Name of the backend this executor schedules on."""
        ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...
