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
"""Networking capability tests, run against every backend."""

from __future__ import annotations

import os
from pathlib import Path

import anyio
import pytest
from anyio.abc import ByteStream

from aiocompat.backend import Backend, load_backend
from aiocompat.io import copy, read_to_end
from aiocompat.kernel.exceptions import (
    AddrInUseException,
    ConnectionRefusedException,
    NotFoundException,
)
from aiocompat.net.ports.outbound import ListenerPort, ReadHalfPort, SocketPort, WriteHalfPort
from aiocompat.net.types import SocketAddr, SocketState

pytestmark = pytest.mark.anyio

LOCALHOST = ("127.0.0.1", 0)


@pytest.fixture(params=["asyncio", "trio"])
def anyio_backend(request: pytest.FixtureRequest) -> str:
    return request.param


@pytest.fixture
def backend(anyio_backend: str) -> Backend:
    return load_backend(anyio_backend)


async def echo_once(listener: ListenerPort) -> None:
    """Accept one connection and echo it until the peer sends EOF."""
    connection, _ = await listener.accept()
    async with connection:
        await copy(connection, connection)
        await connection.send_eof()


async def connected_pair(backend: Backend) -> tuple[SocketPort, SocketPort]:
    async with await backend.tcp_listener.bind(LOCALHOST) as listener:
        client = await backend.tcp_socket.connect(listener.local_addr)
        server, _ = await listener.accept()
    return client, server


class TestTcp:
    async def test_ports_and_contract(self, backend: Backend) -> None:
        client, server = await connected_pair(backend)
        async with client, server:
            assert isinstance(client, SocketPort)
            assert isinstance(client, ByteStream)
            assert isinstance(client, backend.tcp_socket)
            assert client.state is SocketState.OPEN

    async def test_ping_through_split_halves(self, backend: Backend) -> None:
        async with await backend.tcp_listener.bind(LOCALHOST) as listener:
            assert isinstance(listener, ListenerPort)
            async with anyio.create_task_group() as tg:
                tg.start_soon(echo_once, listener)
                socket = await backend.tcp_socket.connect(listener.local_addr)
                read_half, write_half = socket.split()
                assert isinstance(read_half, ReadHalfPort)
                assert isinstance(write_half, WriteHalfPort)
                await write_half.send(b"ping")
                assert await read_half.receive() == b"ping"
                await write_half.aclose()
                with pytest.raises(anyio.EndOfStream):
                    await read_half.receive()
                await read_half.aclose()

    async def test_concurrent_read_and_write_on_halves(self, backend: Backend) -> None:
        payload = os.urandom(1_000_000)
        received: list[bytes] = []

        async def write_all(write_half: WriteHalfPort) -> None:
            async with write_half:
                for offset in range(0, len(payload), 65536):
                    await write_half.send(payload[offset : offset + 65536])

        async def read_all(read_half: ReadHalfPort) -> None:
            async with read_half:
                received.append(await read_to_end(read_half))

        async with await backend.tcp_listener.bind(LOCALHOST) as listener:
            async with anyio.create_task_group() as tg:
                tg.start_soon(echo_once, listener)
                socket = await backend.tcp_socket.connect(listener.local_addr)
                read_half, write_half = socket.split()
                async with anyio.create_task_group() as io:
                    io.start_soon(write_all, write_half)
                    io.start_soon(read_all, read_half)

        assert received == [payload]

    async def test_split_consumes_socket(self, backend: Backend) -> None:
        client, server = await connected_pair(backend)
        read_half, write_half = client.split()
        with pytest.raises(anyio.ClosedResourceError):
            await client.send(b"x")
        with pytest.raises(anyio.ClosedResourceError):
            client.split()
        await client.aclose()
        await write_half.send(b"still open")
        assert await server.receive() == b"still open"
        await read_half.aclose()
        await write_half.aclose()
        await server.aclose()

    async def test_connection_closes_after_both_halves(self, backend: Backend) -> None:
        client, server = await connected_pair(backend)
        read_half, write_half = client.split()
        await read_half.aclose()
        await server.send(b"late")
        await write_half.aclose()
        assert client.state is SocketState.CLOSED
        with pytest.raises(anyio.ClosedResourceError):
            await read_half.receive()
        with pytest.raises(anyio.ClosedResourceError):
            await write_half.send(b"x")
        await server.aclose()

    async def test_state_transitions(self, backend: Backend) -> None:
        client, server = await connected_pair(backend)
        await client.send_eof()
        assert client.state is SocketState.WRITE_CLOSED
        with pytest.raises(anyio.ClosedResourceError):
            await client.send(b"after eof")
        with pytest.raises(anyio.EndOfStream):
            await server.receive()
        assert server.state is SocketState.READ_CLOSED
        with pytest.raises(anyio.EndOfStream):
            await server.receive()
        await server.aclose()
        assert server.state is SocketState.CLOSED
        with pytest.raises(anyio.ClosedResourceError):
            await server.receive()
        await client.aclose()

    async def test_peek_does_not_consume(self, backend: Backend) -> None:
        client, server = await connected_pair(backend)
        async with client, server:
            await client.send(b"hello")
            peeked = await server.peek()
            assert peeked
            assert b"hello".startswith(peeked)
            assert await server.receive() == peeked

    async def test_addresses(self, backend: Backend) -> None:
        async with await backend.tcp_listener.bind("127.0.0.1:0") as listener:
            client = await backend.tcp_socket.connect(listener.local_addr)
            server, peer = await listener.accept()
            async with client, server:
                assert isinstance(listener.local_addr, SocketAddr)
                assert listener.local_addr.port != 0
                assert client.peer_addr == listener.local_addr
                assert peer == client.local_addr
                assert server.peer_addr == client.local_addr

    async def test_socket_options(self, backend: Backend) -> None:
        client, server = await connected_pair(backend)
        async with client, server:
            assert client.nodelay is True
            assert server.nodelay is True
            client.nodelay = False
            assert client.nodelay is False
            client.ttl = 42
            assert client.ttl == 42

    async def test_listener_async_iteration(self, backend: Backend) -> None:
        listener = await backend.tcp_listener.bind(LOCALHOST)
        client = await backend.tcp_socket.connect(listener.local_addr)
        async for connection, peer in listener:
            assert peer == client.local_addr
            await connection.aclose()
            await listener.aclose()
        await client.aclose()


class TestTcpErrors:
    async def test_addr_in_use(self, backend: Backend) -> None:
        async with await backend.tcp_listener.bind(LOCALHOST) as listener:
            with pytest.raises(AddrInUseException) as info:
                await backend.tcp_listener.bind(listener.local_addr)
            assert isinstance(info.value.__cause__, OSError)

    async def test_connection_refused(self, backend: Backend) -> None:
        listener = await backend.tcp_listener.bind(LOCALHOST)
        addr = listener.local_addr
        await listener.aclose()
        with pytest.raises(ConnectionRefusedException) as info:
            await backend.tcp_socket.connect(addr)
        assert isinstance(info.value, ConnectionRefusedError)

    async def test_accept_after_close(self, backend: Backend) -> None:
        listener = await backend.tcp_listener.bind(LOCALHOST)
        await listener.aclose()
        with pytest.raises(anyio.ClosedResourceError):
            await listener.accept()


class TestCloseWhilePending:
    async def test_pending_accept_fails_when_listener_closes(self, backend: Backend) -> None:
        listener = await backend.tcp_listener.bind(LOCALHOST)
        outcome: list[str] = []

        async def wait_for_connection() -> None:
            with pytest.raises(anyio.ClosedResourceError):
                await listener.accept()
            outcome.append("closed")

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(wait_for_connection)
                await anyio.sleep(0.05)
                await listener.aclose()
        assert outcome == ["closed"]

    async def test_iteration_ends_when_listener_closes(self, backend: Backend) -> None:
        listener = await backend.tcp_listener.bind(LOCALHOST)
        accepted: list[object] = []

        async def serve() -> None:
            async for connection, _ in listener:
                accepted.append(connection)

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(serve)
                await anyio.sleep(0.05)
                await listener.aclose()
        assert accepted == []

    async def test_pending_receive_fails_when_socket_closes(self, backend: Backend) -> None:
        left, right = backend.unix_socket.pair()
        outcome: list[str] = []

        async def wait_for_data() -> None:
            with pytest.raises(anyio.ClosedResourceError):
                await left.receive()
            outcome.append("closed")

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(wait_for_data)
                await anyio.sleep(0.05)
                await left.aclose()
        await right.aclose()
        assert outcome == ["closed"]
        assert left.state is SocketState.CLOSED

    async def test_pending_peek_fails_when_socket_closes(self, backend: Backend) -> None:
        client, server = await connected_pair(backend)
        outcome: list[str] = []

        async def wait_for_data() -> None:
            with pytest.raises(anyio.ClosedResourceError):
                await client.peek()
            outcome.append("closed")

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(wait_for_data)
                await anyio.sleep(0.05)
                await client.aclose()
        await server.aclose()
        assert outcome == ["closed"]


class TestUnix:
    async def test_pair(self, backend: Backend) -> None:
        left, right = backend.unix_socket.pair()
        async with left, right:
            assert isinstance(left, backend.unix_socket)
            assert left.peer_addr.is_unnamed
            await left.send(b"over the pair")
            assert await right.receive() == b"over the pair"

    async def test_listener_round_trip(self, backend: Backend, tmp_path: Path) -> None:
        path = tmp_path / "echo.sock"
        async with await backend.unix_listener.bind(path) as listener:
            assert listener.local_addr.path == str(path)
            async with anyio.create_task_group() as tg:
                tg.start_soon(echo_once, listener)
                client = await backend.unix_socket.connect(path)
                async with client:
                    assert client.peer_addr.path == str(path)
                    await client.send(b"unix")
                    await client.send_eof()
                    assert await read_to_end(client) == b"unix"
        assert not path.exists()

    async def test_bind_existing_path(self, backend: Backend, tmp_path: Path) -> None:
        path = tmp_path / "taken.sock"
        async with await backend.unix_listener.bind(path):
            with pytest.raises(AddrInUseException):
                await backend.unix_listener.bind(path)

    async def test_connect_missing_path(self, backend: Backend, tmp_path: Path) -> None:
        with pytest.raises(NotFoundException):
            await backend.unix_socket.connect(tmp_path / "missing.sock")
