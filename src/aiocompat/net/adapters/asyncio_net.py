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
"""asyncio network adapter: non-blocking stdlib sockets driven by ``loop.sock_*``."""

from __future__ import annotations

import asyncio
import os
import socket
from abc import abstractmethod
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import anyio
import structlog
from anyio.abc import AsyncResource, ByteReceiveStream, ByteSendStream, ByteStream

from aiocompat.kernel.errors import os_errors_translated, translate_os_error
from aiocompat.net.types import DEFAULT_BACKLOG, SocketAddr, SocketState, UnixSocketAddr, parse_socket_addr

T = TypeVar("T")

logger = structlog.get_logger("aiocompat.net.asyncio")

_BROKEN_ERRORS = (BrokenPipeError, ConnectionResetError, ConnectionAbortedError)


@contextmanager
def _stream_errors() -> Iterator[None]:
    try:
        yield
    except _BROKEN_ERRORS as exc:
        raise anyio.BrokenResourceError from exc
    except OSError as exc:
        raise translate_os_error(exc) from exc


def _set_ready(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)


class _PendingOps:
    """Loop operations in flight on one socket.

    The selector forgets a file descriptor once it is closed, so waiters are
    cancelled before the socket closes and fail with
    ``anyio.ClosedResourceError``.
    """

    def __init__(self) -> None:
        self._waiters: set[asyncio.Future[Any]] = set()
        self._closing = False

    async def run(self, awaitable: Awaitable[T]) -> T:
        waiter = asyncio.ensure_future(awaitable)
        self._waiters.add(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if self._closing and waiter.cancelled() and not (task and task.cancelling()):
                raise anyio.ClosedResourceError from None
            raise
        finally:
            self._waiters.discard(waiter)

    async def cancel_all(self) -> None:
        self._closing = True
        waiters = list(self._waiters)
        for waiter in waiters:
            waiter.cancel()
        if waiters:
            await asyncio.wait(waiters)


async def _connect(family: int, sockaddr: Any) -> socket.socket:
    loop = asyncio.get_running_loop()
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setblocking(False)
        await loop.sock_connect(sock, sockaddr)
    except BaseException:
        sock.close()
        raise
    return sock


class _AsyncIOSocketStream(ByteStream):
    """Connected socket shared by the whole stream or by its two split halves."""

    def __init__(self, sock: socket.socket) -> None:
        sock.setblocking(False)
        self._sock = sock
        self._closed = False
        self._read_closed = False
        self._write_closed = False
        self._split = False
        self._open_halves = 0
        self._pending = _PendingOps()

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
        loop = asyncio.get_running_loop()
        with _stream_errors():
            data = await self._pending.run(loop.sock_recv(self._sock, max_bytes))
        if not data:
            self._read_closed = True
            raise anyio.EndOfStream
        return data

    async def _send(self, item: bytes) -> None:
        if self._closed or self._write_closed:
            raise anyio.ClosedResourceError
        loop = asyncio.get_running_loop()
        with _stream_errors():
            await self._pending.run(loop.sock_sendall(self._sock, item))

    async def _send_eof(self) -> None:
        if self._closed:
            raise anyio.ClosedResourceError
        if self._write_closed:
            return
        self._write_closed = True
        with _stream_errors():
            self._sock.shutdown(socket.SHUT_WR)

    async def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pending.cancel_all()
        finally:
            self._sock.close()

    async def _release_half(self) -> None:
        self._open_halves -= 1
        if self._open_halves == 0:
            await self._close()

    async def _wait_readable(self) -> None:
        loop = asyncio.get_running_loop()
        ready: asyncio.Future[None] = loop.create_future()
        fd = self._sock.fileno()
        loop.add_reader(fd, _set_ready, ready)
        try:
            await self._pending.run(ready)
        finally:
            loop.remove_reader(fd)

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
        while True:
            with _stream_errors():
                try:
                    return self._sock.recv(max_bytes, socket.MSG_PEEK)
                except BlockingIOError:
                    pass
            await self._wait_readable()

    def split(self) -> tuple[AsyncIOReadHalf, AsyncIOWriteHalf]:
        self._check_owned()
        self._split = True
        self._open_halves = 2
        return AsyncIOReadHalf(self), AsyncIOWriteHalf(self)

    async def aclose(self) -> None:
        # After split the halves own the connection.
        if self._split:
            return
        await self._close()


class AsyncIOReadHalf(ByteReceiveStream):
    def __init__(self, stream: _AsyncIOSocketStream) -> None:
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


class AsyncIOWriteHalf(ByteSendStream):
    def __init__(self, stream: _AsyncIOSocketStream) -> None:
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


class AsyncIOTcpSocket(_AsyncIOSocketStream):
    """TCP connection on the asyncio backend. ``TCP_NODELAY`` starts enabled."""

    def __init__(self, sock: socket.socket) -> None:
        super().__init__(sock)
        # Same default as trio.SocketStream.
        with os_errors_translated():
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

    @classmethod
    async def connect(cls, addr: str | tuple[str, int] | SocketAddr) -> AsyncIOTcpSocket:
        """Connect to *addr*, trying each resolved address in order."""
        target = parse_socket_addr(addr)
        loop = asyncio.get_running_loop()
        with os_errors_translated():
            infos = await loop.getaddrinfo(target.host, target.port, type=socket.SOCK_STREAM)
            last_error: OSError | None = None
            for family, _type, _proto, _canonname, sockaddr in infos:
                try:
                    sock = await _connect(family, sockaddr)
                except OSError as exc:
                    last_error = exc
                    continue
                connection = cls(sock)
                logger.debug("connected", backend="asyncio", peer=str(connection.peer_addr))
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


class AsyncIOUnixSocket(_AsyncIOSocketStream):
    """Unix-domain stream connection on the asyncio backend."""

    @classmethod
    async def connect(cls, path: str | os.PathLike[str]) -> AsyncIOUnixSocket:
        with os_errors_translated():
            sock = await _connect(socket.AF_UNIX, os.fspath(path))
        logger.debug("connected", backend="asyncio", path=os.fspath(path))
        return cls(sock)

    @classmethod
    def pair(cls) -> tuple[AsyncIOUnixSocket, AsyncIOUnixSocket]:
        """Create a pair of connected, unnamed sockets."""
        with os_errors_translated():
            left, right = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
        return cls(left), cls(right)

    @property
    def peer_addr(self) -> UnixSocketAddr:
        with os_errors_translated():
            return UnixSocketAddr.from_sockname(self._sock.getpeername())

    @property
    def local_addr(self) -> UnixSocketAddr:
        with os_errors_translated():
            return UnixSocketAddr.from_sockname(self._sock.getsockname())


class _AsyncIOListener(AsyncResource):
    def __init__(self, sock: socket.socket) -> None:
        sock.setblocking(False)
        self._sock = sock
        self._closed = False
        self._pending = _PendingOps()

    async def _accept_raw(self) -> tuple[socket.socket, Any]:
        if self._closed:
            raise anyio.ClosedResourceError
        loop = asyncio.get_running_loop()
        with os_errors_translated():
            return await self._pending.run(loop.sock_accept(self._sock))

    @abstractmethod
    async def accept(self) -> tuple[Any, Any]: ...

    def __aiter__(self) -> _AsyncIOListener:
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
        try:
            await self._pending.cancel_all()
        finally:
            self._sock.close()


class AsyncIOTcpListener(_AsyncIOListener):
    """Listening TCP socket on the asyncio backend."""

    @classmethod
    async def bind(
        cls, addr: str | tuple[str, int] | SocketAddr, *, backlog: int = DEFAULT_BACKLOG
    ) -> AsyncIOTcpListener:
        """Bind to the first address *addr* resolves to and start listening."""
        target = parse_socket_addr(addr)
        loop = asyncio.get_running_loop()
        with os_errors_translated():
            infos = await loop.getaddrinfo(
                target.host or None, target.port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
            )
            family, _type, proto, _canonname, sockaddr = infos[0]
            sock = socket.socket(family, socket.SOCK_STREAM, proto)
            try:
                if os.name != "nt":
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind(sockaddr)
                sock.listen(backlog)
            except BaseException:
                sock.close()
                raise
        listener = cls(sock)
        logger.debug("listener_bound", backend="asyncio", addr=str(listener.local_addr))
        return listener

    @property
    def local_addr(self) -> SocketAddr:
        with os_errors_translated():
            return SocketAddr.from_sockname(self._sock.getsockname())

    async def accept(self) -> tuple[AsyncIOTcpSocket, SocketAddr]:
        conn, addr = await self._accept_raw()
        peer = SocketAddr.from_sockname(addr)
        logger.debug("connection_accepted", backend="asyncio", peer=str(peer))
        return AsyncIOTcpSocket(conn), peer


class AsyncIOUnixListener(_AsyncIOListener):
    """Listening Unix-domain socket; the socket file is removed on close."""

    def __init__(self, sock: socket.socket, path: str) -> None:
        super().__init__(sock)
        self._path = path

    @classmethod
    async def bind(cls, path: str | os.PathLike[str], *, backlog: int = DEFAULT_BACKLOG) -> AsyncIOUnixListener:
        path = os.fspath(path)
        with os_errors_translated():
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.bind(path)
                sock.listen(backlog)
            except BaseException:
                sock.close()
                raise
        logger.debug("listener_bound", backend="asyncio", path=path)
        return cls(sock, path)

    @property
    def local_addr(self) -> UnixSocketAddr:
        return UnixSocketAddr(self._path)

    async def accept(self) -> tuple[AsyncIOUnixSocket, UnixSocketAddr]:
        conn, addr = await self._accept_raw()
        logger.debug("connection_accepted", backend="asyncio", path=self._path)
        return AsyncIOUnixSocket(conn), UnixSocketAddr.from_sockname(addr)

    async def aclose(self) -> None:
        if self._closed:
            return
        await super().aclose()
        with os_errors_translated():
            try:
                os.unlink(self._path)
            except FileNotFoundError:
                pass
