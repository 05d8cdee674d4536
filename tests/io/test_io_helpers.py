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
"""Tests for the shared byte-stream helpers."""

from __future__ import annotations

import asyncio
import socket
from pathlib import Path

import anyio
import pytest
from anyio.abc import ByteReceiveStream, ByteSendStream

from aiocompat.backend import load_backend
from aiocompat.io import (
    AsyncIOStreamCompat,
    BufferedByteReceiveStream,
    BufferedByteSendStream,
    StapledByteStream,
    TextReceiveStream,
    TextSendStream,
    copy,
    read_to_end,
    wrap_file,
)


class RecordingSendStream(ByteSendStream):
    """Collects every send so tests can see how writes were coalesced."""

    def __init__(self) -> None:
        self.sends: list[bytes] = []
        self.eof = False
        self.closed = False

    async def send(self, item: bytes) -> None:
        self.sends.append(bytes(item))

    async def send_eof(self) -> None:
        self.eof = True

    async def aclose(self) -> None:
        self.closed = True


class ChunkReceiveStream(ByteReceiveStream):
    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)

    async def receive(self, max_bytes: int = 65536) -> bytes:
        if not self._chunks:
            raise anyio.EndOfStream
        return self._chunks.pop(0)

    async def aclose(self) -> None:
        self._chunks.clear()


class TestHelpers:
    @pytest.mark.asyncio
    async def test_read_to_end(self) -> None:
        assert await read_to_end(ChunkReceiveStream([b"a", b"bc", b"def"])) == b"abcdef"

    @pytest.mark.asyncio
    async def test_read_to_end_empty(self) -> None:
        assert await read_to_end(ChunkReceiveStream([])) == b""

    @pytest.mark.asyncio
    async def test_copy_returns_byte_count(self) -> None:
        sink = RecordingSendStream()
        assert await copy(ChunkReceiveStream([b"ab", b"cde"]), sink) == 5
        assert sink.sends == [b"ab", b"cde"]
        assert sink.closed is False


class TestBufferedByteSendStream:
    @pytest.mark.asyncio
    async def test_coalesces_small_writes(self) -> None:
        sink = RecordingSendStream()
        buffered = BufferedByteSendStream(sink, capacity=4)
        await buffered.send(b"a")
        await buffered.send(b"b")
        assert sink.sends == []
        assert buffered.buffer == b"ab"
        await buffered.send(b"cd")
        assert sink.sends == [b"abcd"]

    @pytest.mark.asyncio
    async def test_flush_and_close(self) -> None:
        sink = RecordingSendStream()
        buffered = BufferedByteSendStream(sink)
        await buffered.send(b"tail")
        await buffered.flush()
        await buffered.flush()
        assert sink.sends == [b"tail"]
        await buffered.send(b"more")
        await buffered.aclose()
        assert sink.sends == [b"tail", b"more"]
        assert sink.closed is True

    @pytest.mark.asyncio
    async def test_send_eof_flushes_first(self) -> None:
        sink = RecordingSendStream()
        buffered = BufferedByteSendStream(sink)
        await buffered.send(b"last")
        await buffered.send_eof()
        assert sink.sends == [b"last"]
        assert sink.eof is True

    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ValueError):
            BufferedByteSendStream(RecordingSendStream(), capacity=0)


class TestAnyioHelpersOnBackendTypes:
    @pytest.mark.asyncio
    async def test_text_streams_over_unix_pair(self) -> None:
        left, right = load_backend("asyncio").unix_socket.pair()
        async with left, right:
            await TextSendStream(left).send("grüße")
            await left.send_eof()
            text = TextReceiveStream(right)
            assert "".join([chunk async for chunk in text]) == "grüße"

    @pytest.mark.asyncio
    async def test_stapled_and_buffered_over_file(self, tmp_path: Path) -> None:
        fs = load_backend("asyncio").filesystem
        await fs.write(tmp_path / "in.txt", b"header\r\nbody")
        source = await fs.open(tmp_path / "in.txt")
        sink = await fs.create(tmp_path / "out.txt")
        async with StapledByteStream(sink, source) as stream:
            reader = BufferedByteReceiveStream(stream)
            header = await reader.receive_until(b"\r\n", 64)
            await stream.send(header)
        assert await fs.read(tmp_path / "out.txt") == b"header"

    @pytest.mark.asyncio
    async def test_wrap_file(self, tmp_path: Path) -> None:
        target = tmp_path / "plain.txt"
        target.write_bytes(b"sync world")
        async with wrap_file(open(target, "rb")) as file:
            assert await file.read() == b"sync world"


class TestAsyncIOStreamCompat:
    @pytest.mark.asyncio
    async def test_wraps_asyncio_streams(self) -> None:
        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            stream = AsyncIOStreamCompat(reader, writer)
            async with stream:
                await copy(stream, stream)
                await stream.send_eof()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            client = AsyncIOStreamCompat(reader, writer)
            async with client:
                await client.send(b"compat")
                await client.send_eof()
                assert await read_to_end(client) == b"compat"
                with pytest.raises(anyio.EndOfStream):
                    await client.receive()

    @pytest.mark.asyncio
    async def test_closed_stream_rejects_io(self) -> None:
        left, right = socket.socketpair()
        right.close()
        reader, writer = await asyncio.open_unix_connection(sock=left)
        stream = AsyncIOStreamCompat(reader, writer)
        await stream.aclose()
        with pytest.raises(anyio.ClosedResourceError):
            await stream.receive()
        with pytest.raises(anyio.ClosedResourceError):
            await stream.send(b"x")
