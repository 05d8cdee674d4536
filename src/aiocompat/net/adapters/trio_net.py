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
"""trio network adapter: ``trio.SocketStream`` connections and ``trio.socket`` listeners."""

from __future__ import annotations

import os
import socket
from abc import abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import anyio
import structlog
import trio
from anyio.abc import AsyncResource, ByteReceiveStream, ByteSendStream, ByteStream

from aiocompat.kernel.errors import os_errors_translated, translate_os_error
from aiocompat.net.types import DEFAULT_BACKLOG, SocketAddr, SocketState, UnixSocketAddr, parse_socket_addr

logger = structlog.get_logger("aiocompat.net.trio")

_BROKEN_ERRORS = (BrokenPipeError, ConnectionResetError, ConnectionAbortedError)


@contextmanager
def _stream_errors() -> Iterator[None]:
    """Re-raise trio stream errors as their anyio counterparts."""
    try:
        yield
    except trio.BrokenResourceError as exc:
        raise anyio.BrokenResourceError from exc
    except trio.ClosedResourceError as exc:
        raise anyio.ClosedResourceError from exc
    except trio.BusyResourceError as exc:
        raise anyio.BusyResourceError("using") from exc
    except _BROKEN_ERRORS as exc:
        raise anyio.BrokenResourceError from exc
    except OSError as exc:
        raise translate_os_error(exc) from exc


async def _connect(family: int, sockaddr: Any) -> trio.socket.SocketType:
    sock = trio.socket.socket(family, socket.SOCK_STREAM)
    try:
        await sock.connect(sockaddr)
    except BaseException:
        sock.close()
        raise
    return sock


class _TrioSocketStream(ByteStream):
    """Connected socket shared by the whole stream or by its two split halves."""

    def __init__(self, sock: trio.socket.SocketType) -> None:
        self._stream = trio.SocketStream(sock)
        self._closed = False
        self._read_closed = False
        self._write_closed = False
        self._split = False
        self._open_halves = 0

    @property
    def _sock(self) -> trio.socket.SocketType:
        return self._stream.socket

    @property
    def state(self) -> SocketState:
        return SocketState.of(closed=self._closed, read_closed=self._read_closed, write_closed=self._write_closed)

    def _check_owned(self) -> None:
        if self._split or self._closed:
            raise anyio.ClosedResourceError

    async def _receive(self, max_bytes: int) -> bytes:
        if self._closed:
            raise anyio.ClosedResourceError
        if self._read_closed:
            raise anyio.EndOfStream
        with _stream_errors():
            data = await self._stream.receive_some(max_bytes)
        if not data:
            self._read_closed = True
            raise anyio.EndOfStream
        return data

    async def _send(self, item: bytes) -> None:
        if self._closed or self._write_closed:
            raise anyio.ClosedResourceError
        with _stream_errors():
            await self._stream.send_all(item)

    async def _send_eof(self) -> None:
        if self._closed:
            raise anyio.ClosedResourceError
        if self._write_closed:
            return
        self._write_closed = True
        with _stream_errors():
            await self._stream.send_eof()

    async def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._stream.aclose()

    async def _release_half(self) -> None:
        self._open_halves -= 1
        if self._open_halves == 0:
            await self._close()

    async def receive(self, max_bytes: int = 65536) -> bytes:
        self._check_owned()
        return await self._receive(max_bytes)

    async def send(self, item: bytes) -> None:
        self._check_owned()
        await self._send(item)

    async def send_eof(self) -> None:
        self._check_owned()
        await self._send_eof()

    async def peek(self, max_bytes: int = 65536) -> bytes:
        self._check_owned()
        with _stream_errors():
            return await self._sock.recv(max_bytes, socket.MSG_PEEK)

    def split(self) -> tuple[TrioReadHalf, TrioWriteHalf]:
        self._check_owned()
        self._split = True
        self._open_halves = 2
        return TrioReadHalf(self), TrioWriteHalf(self)

    async def aclose(self) -> None:
        if self._split:
            return
        await self._close()


class TrioReadHalf(ByteReceiveStream):
    def __init__(self, stream: _TrioSocketStream) -> None:
        self._stream = stream
        self._closed = False

    async def receive(self, max_bytes: int = 65536) -> bytes:
        if self._closed:
            raise anyio.ClosedResourceError
        return await self._stream._receive(max_bytes)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._stream._release_half()


class TrioWriteHalf(ByteSendStream):
    def __init__(self, stream: _TrioSocketStream) -> None:
        self._stream = stream
        self._closed = False

    async def send(self, item: bytes) -> None:
        if self._closed:
            raise anyio.ClosedResourceError
        await self._stream._send(item)

    async def send_eof(self) -> None:
        if self._closed:
            raise anyio.ClosedResourceError
        await self._stream._send_eof()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._stream._send_eof()
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            pass
        finally:
            await self._stream._release_half()


class TrioTcpSocket(_TrioSocketStream):
    """TCP connection on the trio backend."""

    @classmethod
    async def connect(cls, addr: str | tuple[str, int] | SocketAddr) -> TrioTcpSocket:
        """Connect to *addr*, trying each resolved address in order."""
        target = parse_socket_addr(addr)
        with os_errors_translated():
            infos = await trio.socket.getaddrinfo(target.host, target.port, type=socket.SOCK_STREAM)
            last_error: OSError | None = None
            for family, _type, _proto, _canonname, sockaddr in infos:
                try:
                    sock = await _connect(family, sockaddr)
                except OSError as exc:
                    last_error = exc
                    continue
                connection = cls(sock)
                logger.debug("connected", backend="trio", peer=str(connection.peer_addr))
                return connection
            raise last_error or OSError(f"No address resolved for {target}")

    @property
    def peer_addr(self) -> SocketAddr:
        with os_errors_translated():
            return SocketAddr.from_sockname(self._sock.getpeername())

    @property
    def local_addr(self) -> SocketAddr:
        with os_errors_translated():
            return SocketAddr.from_sockname(self._sock.getsockname())

    @property
    def nodelay(self) -> bool:
        with os_errors_translated():
            return bool(self._sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY))

    @nodelay.setter
    def nodelay(self, value: bool) -> None:
        with os_errors_translated():
            self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, int(value))

    @property
    def ttl(self) -> int:
        with os_errors_translated():
            return self._sock.getsockopt(socket.IPPROTO_IP, socket.IP_TTL)

    @ttl.setter
    def ttl(self, value: int) -> None:
        with os_errors_translated():
            self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, value)


class TrioUnixSocket(_TrioSocketStream):
    """Unix-domain stream connection on the trio backend."""

    @classmethod
    async def connect(cls, path: str | os.PathLike[str]) -> TrioUnixSocket:
        with os_errors_translated():
            sock = await _connect(socket.AF_UNIX, os.fspath(path))
        logger.debug("connected", backend="trio", path=os.fspath(path))
        return cls(sock)

    @classmethod
    def pair(cls) -> tuple[TrioUnixSocket, TrioUnixSocket]:
        """Create a pair of connected, unnamed sockets."""
        with os_errors_translated():
            left, right = trio.socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
        return cls(left), cls(right)

    @property
    def peer_addr(self) -> UnixSocketAddr:
        with os_errors_translated():
            return UnixSocketAddr.from_sockname(self._sock.getpeername())

    @property
    def local_addr(self) -> UnixSocketAddr:
        with os_errors_translated():
            return UnixSocketAddr.from_sockname(self._sock.getsockname())


class _TrioListener(AsyncResource):
    def __init__(self, sock: trio.socket.SocketType) -> None:
        self._sock = sock
        self._closed = False

    async def _accept_raw(self) -> tuple[trio.socket.SocketType, Any]:
        if self._closed:
            raise anyio.ClosedResourceError
        try:
            with os_errors_translated():
                return await self._sock.accept()
        except trio.ClosedResourceError as exc:
            raise anyio.ClosedResourceError from exc

    @abstractmethod
    async def accept(self) -> tuple[Any, Any]: ...

    def __aiter__(self) -> _TrioListener:
        return self

    async def __anext__(self) -> tuple[Any, Any]:
        try:
            return await self.accept()
        except anyio.ClosedResourceError:
            raise StopAsyncIteration from None

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wakes any task blocked in accept() with ClosedResourceError.
        self._sock.close()
        await trio.lowlevel.checkpoint()


class TrioTcpListener(_TrioListener):
    """Listening TCP socket on the trio backend."""

    @classmethod
    async def bind(cls, addr: str | tuple[str, int] | SocketAddr, *, backlog: int = DEFAULT_BACKLOG) -> TrioTcpListener:
        """Bind to the first address *addr* resolves to and start listening."""
        target = parse_socket_addr(addr)
        with os_errors_translated():
            infos = await trio.socket.getaddrinfo(
                target.host or None, target.port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
            )
            family, _type, proto, _canonname, sockaddr = infos[0]
            sock = trio.socket.socket(family, socket.SOCK_STREAM, proto)
            try:
                if os.name != "nt":
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                await sock.bind(sockaddr)
                sock.listen(backlog)
            except BaseException:
                sock.close()
                raise
        listener = cls(sock)
        logger.debug("listener_bound", backend="trio", addr=str(listener.local_addr))
        return listener

    @property
    def local_addr(self) -> SocketAddr:
        with os_errors_translated():
            return SocketAddr.from_sockname(self._sock.getsockname())

    async def accept(self) -> tuple[TrioTcpSocket, SocketAddr]:
        conn, addr = await self._accept_raw()
        peer = SocketAddr.from_sockname(addr)
        logger.debug("connection_accepted", backend="trio", peer=str(peer))
        return TrioTcpSocket(conn), peer


class TrioUnixListener(_TrioListener):
    """Listening Unix-domain socket; the socket file is removed on close."""

    def __init__(self, sock: trio.socket.SocketType, path: str) -> None:
        super().__init__(sock)
        self._path = path

    @classmethod
    async def bind(cls, path: str | os.PathLike[str], *, backlog: int = DEFAULT_BACKLOG) -> TrioUnixListener:
        path = os.fspath(path)
        with os_errors_translated():
            sock = trio.socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                await sock.bind(path)
                sock.listen(backlog)
            except BaseException:
                sock.close()
                raise
        logger.debug("listener_bound", backend="trio", path=path)
        return cls(sock, path)

    @property
    def local_addr(self) -> UnixSocketAddr:
        return UnixSocketAddr(self._path)

    async def accept(self) -> tuple[TrioUnixSocket, UnixSocketAddr]:
        conn, addr = await self._accept_raw()
        logger.debug("connection_accepted", backend="trio", path=self._path)
        return TrioUnixSocket(conn), UnixSocketAddr.from_sockname(addr)

    async def aclose(self) -> None:
        if self._closed:
            return
        await super().aclose()
        with os_errors_translated():
            try:
                os.unlink(self._path)
            except FileNotFoundError:
                pass
