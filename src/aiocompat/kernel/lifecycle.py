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
"""Unified lifecycle protocol for resources that own a scheduler or pool.

Executors implement this protocol. ``start()`` prepares whatever the backend
needs before the first spawn, ``stop()`` waits for outstanding work and
releases pools. Both are also reachable through ``async with``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Lifecycle(Protocol):
    """Standard lifecycle for backend adapters."""

    async def start(self) -> None:
        """Prepare the adapter for use.

        Idempotent. Adapters that need nothing (asyncio) return immediately.
        """
        ...

    async def stop(self) -> None:
        """Wait for outstanding work and release owned resources."""
        ...
