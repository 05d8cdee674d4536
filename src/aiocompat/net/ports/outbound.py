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
"""Networking capability ports.

Connected sockets and their halves are anyio byte streams: ``receive``
raises ``anyio.EndOfStream`` once the peer has finished sending, broken
connections raise ``anyio.BrokenResourceError`` and use after close raises
``anyio.ClosedResourceError``. Bind/connect/accept failures use the unified
taxonomy (``AddrInUseException``, ``ConnectionRefusedException``, ...).
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from aiocompat.net.types import SocketState


@runtime_checkable
class ReadHalfPort(Protocol):
    """Receiving side of a split socket."""

    async def receive(self, max_bytes: int = 65536) -> bytes: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class WriteHalfPort(Protocol):
    """Sending side of a split socket. Closing it sends EOF to the peer."""

    async def send(self, item: bytes) -> None: ...

    async def send_eof(self) -> None: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class SocketPort(Protocol):
    """An established bidirectional byte-stream connection.

    Closing it makes any pending operation fail with ``anyio.ClosedResourceError``.
    TCP connections start with ``TCP_NODELAY`` enabled on every backend.
    """

    @property
    def state(self) -> SocketState: ...

    @property
    def peer_addr(self) -> Any: ...

    @property
    def local_addr(self) -> Any: ...

    async def receive(self, max_bytes: int = 65536) -> bytes: ...

    async def send(self, item: bytes) -> None: ...

    async def send_eof(self) -> None: ...

    async def peek(self, max_bytes: int = 65536) -> bytes:
        """Receive without consuming. Must not run concurrently with ``receive``."""
        ...

    def split(self) -> tuple[ReadHalfPort, WriteHalfPort]:
        """Consume the socket into independently owned halves.

        The connection is closed once both halves are closed.
        """
        ...

    async def aclose(self) -> None: ...


@runtime_checkable
class ListenerPort(Protocol):
    """A bound, listening endpoint."""

    @property
    def local_addr(self) -> Any: ...

    async def accept(self) -> tuple[SocketPort, Any]:
        """Wait for a connection and return it with the peer address.

        Errors are raised but leave the listener usable; the caller decides
        whether to retry.
        Closing the listener fails a pending call with ``anyio.ClosedResourceError``.
        """
        ...

    async def aclose(self) -> None: ...
