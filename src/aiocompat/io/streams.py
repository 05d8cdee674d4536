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
"""Generic helpers over anyio byte streams."""

from __future__ import annotations

from anyio.abc import ByteReceiveStream, ByteSendStream

DEFAULT_BUFFER_SIZE = 8192


async def copy(source: ByteReceiveStream, sink: ByteSendStream) -> int:
    """Pump *source* into *sink* until end of stream; return the byte count.

    Neither stream is closed.
    """
    total = 0
    async for chunk in source:
        await sink.send(chunk)
        total += len(chunk)
    return total


async def read_to_end(source: ByteReceiveStream) -> bytes:
    """Receive everything left on *source*."""
    chunks = [chunk async for chunk in source]
    return b"".join(chunks)


class BufferedByteSendStream(ByteSendStream):
    """Coalesces small writes into sends of at least ``capacity`` bytes.

    Pending bytes go out on :meth:`flush`, :meth:`send_eof` or :meth:`aclose`.
    """

    def __init__(self, stream: ByteSendStream, capacity: int = DEFAULT_BUFFER_SIZE) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._stream = stream
        self._capacity = capacity
        self._buffer = bytearray()

    @property
    def buffer(self) -> bytes:
        return bytes(self._buffer)

    async def send(self, item: bytes) -> None:
        self._buffer += item
        if len(self._buffer) >= self._capacity:
            await self.flush()

    async def flush(self) -> None:
        if not self._buffer:
            return
        data = bytes(self._buffer)
        self._buffer.clear()
        await self._stream.send(data)

    async def send_eof(self) -> None:
        await self.flush()
        send_eof = getattr(self._stream, "send_eof", None)
        if send_eof is not None:
            await send_eof()

    async def aclose(self) -> None:
        try:
            await self.flush()
        finally:
            await self._stream.aclose()
