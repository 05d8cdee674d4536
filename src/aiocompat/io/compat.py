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
"""Adapter from asyncio's ``StreamReader``/``StreamWriter`` pair to an anyio byte stream."""

from __future__ import annotations

import asyncio

import anyio
from anyio.abc import ByteStream

from aiocompat.kernel.errors import translate_os_error

_BROKEN_ERRORS = (BrokenPipeError, ConnectionResetError, ConnectionAbortedError)


class AsyncIOStreamCompat(ByteStream):
    """Present streams from ``asyncio.open_connection`` and friends as a ``ByteStream``."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._closed = False

    @property
    def reader(self) -> asyncio.StreamReader:
        return self._reader

    @property
    def writer(self) -> asyncio.StreamWriter:
        return self._writer

    async def receive(self, max_bytes: int = 65536) -> bytes:
        if self._closed:
            raise anyio.ClosedResourceError
        try:
            data = await self._reader.read(max_bytes)
        except _BROKEN_ERRORS as exc:
            raise anyio.BrokenResourceError from exc
        except OSError as exc:
            raise translate_os_error(exc) from exc
        if not data:
            raise anyio.EndOfStream
        return data

    async def send(self, item: bytes) -> None:
        if self._closed or self._writer.is_closing():
            raise anyio.ClosedResourceError
        try:
            self._writer.write(item)
            await self._writer.drain()
        except _BROKEN_ERRORS as exc:
            raise anyio.BrokenResourceError from exc
        except OSError as exc:
            raise translate_os_error(exc) from exc

    async def send_eof(self) -> None:
        if self._closed:
            raise anyio.ClosedResourceError
        if self._writer.can_write_eof():
            self._writer.write_eof()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except _BROKEN_ERRORS:
            # Peer already gone; the transport is closed either way.
            pass
