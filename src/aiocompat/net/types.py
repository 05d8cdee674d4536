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
"""Backend-independent network values: addresses and socket states."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

from aiocompat.kernel.exceptions import InvalidInputException

DEFAULT_BACKLOG = 128


class SocketAddr(NamedTuple):
    """Host and port of a TCP endpoint (IPv6 scope/flow info dropped)."""

    host: str
    port: int

    @classmethod
    def from_sockname(cls, value: Any) -> SocketAddr:
        return cls(value[0], value[1])

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class UnixSocketAddr:
    """Address of a Unix-domain socket; ``path`` is ``None`` for unnamed sockets."""

    path: str | None

    @classmethod
    def from_sockname(cls, value: Any) -> UnixSocketAddr:
        if isinstance(value, bytes):
            value = value.decode()
        return cls(value or None)

    @property
    def is_unnamed(self) -> bool:
        return self.path is None


class SocketState(Enum):
    """Lifecycle of a connected socket. ``CLOSED`` is terminal."""

    OPEN = "open"
    READ_CLOSED = "read_closed"
    WRITE_CLOSED = "write_closed"
    CLOSED = "closed"

    @classmethod
    def of(cls, *, closed: bool, read_closed: bool, write_closed: bool) -> SocketState:
        if closed or (read_closed and write_closed):
            return cls.CLOSED
        if read_closed:
            return cls.READ_CLOSED
        if write_closed:
            return cls.WRITE_CLOSED
        return cls.OPEN


def parse_socket_addr(addr: str | tuple[str, int] | SocketAddr) -> SocketAddr:
    """Accept ``(host, port)``, ``"host:port"`` or ``"[v6]:port"``."""
    if isinstance(addr, tuple):
        host, port = addr[0], addr[1]
        return SocketAddr(str(host), int(port))
    if not isinstance(addr, str):
        raise InvalidInputException(f"Unsupported socket address: {addr!r}")
    if addr.startswith("["):
        host, sep, rest = addr[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise InvalidInputException(f"Invalid socket address: {addr!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = addr.rpartition(":")
        if not sep:
            raise InvalidInputException(f"Invalid socket address (missing port): {addr!r}")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise InvalidInputException(f"Invalid port in socket address: {addr!r}") from exc
    if not 0 <= port <= 65535:
        raise InvalidInputException(f"Port out of range in socket address: {addr!r}")
    return SocketAddr(host, port)
