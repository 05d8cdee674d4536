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
"""AsyncIO filesystem adapter backed by ``aiofiles``.

asyncio has no native file I/O; aiofiles runs each call on the loop's
default executor, which is what this adapter forwards to.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
import aiofiles.ospath
import anyio
import structlog
from anyio.abc import ByteReceiveStream, ByteSendStream

from aiocompat.fs.blocking import copy_file, next_entry
from aiocompat.fs.ports.outbound import StrPath
from aiocompat.fs.types import DirEntry, Metadata, OpenOptions, Permissions, decode_utf8
from aiocompat.kernel.errors import os_errors_translated, translate_os_error, translate_os_errors

logger = structlog.get_logger("aiocompat.fs.asyncio")

_fstat = aiofiles.os.wrap(os.fstat)
_fsync = aiofiles.os.wrap(os.fsync)
_fdatasync = aiofiles.os.wrap(getattr(os, "fdatasync", os.fsync))
_fchmod = aiofiles.os.wrap(os.fchmod)
_chmod = aiofiles.os.wrap(os.chmod)
_resolve = aiofiles.os.wrap(Path.resolve)
_copy_file = aiofiles.os.wrap(copy_file)
_rmtree = aiofiles.os.wrap(shutil.rmtree)
_next_entry = aiofiles.os.wrap(next_entry)


class AsyncIOFile(ByteReceiveStream, ByteSendStream):
    """An open file driven through aiofiles."""

    def __init__(self, file: Any, path: StrPath) -> None:
        self._file = file
        self._path = os.fspath(path)
        self._closed = False

    @property
    def path(self) -> str:
        return self._path

    def _check_open(self) -> None:
        if self._closed:
            raise anyio.ClosedResourceError

    @translate_os_errors
    async def read(self, size: int = -1) -> bytes:
        self._check_open()
        return await self._file.read(size)

    @translate_os_errors
    async def write(self, data: bytes) -> int:
        self._check_open()
        return await self._file.write(data)

    @translate_os_errors
    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check_open()
        return await self._file.seek(offset, whence)

    @translate_os_errors
    async def tell(self) -> int:
        self._check_open()
        return await self._file.tell()

    @translate_os_errors
    async def flush(self) -> None:
        self._check_open()
        await self._file.flush()

    @translate_os_errors
    async def sync_all(self) -> None:
        await self.flush()
        await _fsync(self._file.fileno())

    @translate_os_errors
    async def sync_data(self) -> None:
        await self.flush()
        await _fdatasync(self._file.fileno())

    @translate_os_errors
    async def set_len(self, size: int) -> None:
        self._check_open()
        await self._file.truncate(size)

    @translate_os_errors
    async def metadata(self) -> Metadata:
        self._check_open()
        return Metadata.from_stat(await _fstat(self._file.fileno()))

    @translate_os_errors
    async def set_permissions(self, permissions: Permissions) -> None:
        self._check_open()
        await _fchmod(self._file.fileno(), permissions.mode)

    async def receive(self, max_bytes: int = 65536) -> bytes:
        data = await self.read(max_bytes)
        if not data:
            raise anyio.EndOfStream
        return data

    async def send(self, item: bytes) -> None:
        view = memoryview(item)
        while view:
            written = await self.write(view)
            view = view[written:]

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        with os_errors_translated():
            await self._file.close()


class AsyncIODirEntryStream:
    """Directory entries fetched one at a time from an ``os.scandir`` iterator."""

    def __init__(self, iterator: Iterator[os.DirEntry[str]]) -> None:
        self._iterator: Iterator[os.DirEntry[str]] | None = iterator

    def __aiter__(self) -> AsyncIODirEntryStream:
        return self

    async def __anext__(self) -> DirEntry:
        if self._iterator is None:
            raise StopAsyncIteration
        try:
            entry = await _next_entry(self._iterator)
        except OSError as exc:
            self._release()
            raise translate_os_error(exc) from exc
        if entry is None:
            self._release()
            raise StopAsyncIteration
        return entry

    def _release(self) -> None:
        iterator, self._iterator = self._iterator, None
        close = getattr(iterator, "close", None)
        if close is not None:
            close()

    async def aclose(self) -> None:
        self._release()


class AsyncIOFilesystem:
    """Filesystem operations for the asyncio runtime."""

    @property
    def backend(self) -> str:
        return "asyncio"

    @translate_os_errors
    async def open(self, path: StrPath, options: OpenOptions | None = None) -> AsyncIOFile:
        options = options or OpenOptions.for_reading()
        opener = options.opener()
        file = await aiofiles.open(path, options.to_mode(), opener=opener)
        logger.debug("file_opened", backend="asyncio", path=os.fspath(path), mode=options.to_mode())
        return AsyncIOFile(file, path)

    async def create(self, path: StrPath) -> AsyncIOFile:
        return await self.open(path, OpenOptions.for_writing())

    @translate_os_errors
    async def read(self, path: StrPath) -> bytes:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def read_to_string(self, path: StrPath) -> str:
        return decode_utf8(await self.read(path), path)

    @translate_os_errors
    async def write(self, path: StrPath, contents: bytes | str) -> None:
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        async with aiofiles.open(path, "wb") as f:
            await f.write(contents)

    @translate_os_errors
    async def copy(self, src: StrPath, dst: StrPath) -> int:
        return await _copy_file(os.fspath(src), os.fspath(dst))

    @translate_os_errors
    async def rename(self, src: StrPath, dst: StrPath) -> None:
        await aiofiles.os.replace(src, dst)

    @translate_os_errors
    async def remove_file(self, path: StrPath) -> None:
        await aiofiles.os.remove(path)

    @translate_os_errors
    async def create_dir(self, path: StrPath, *, mode: int = 0o777) -> None:
        await aiofiles.os.mkdir(path, mode)

    @translate_os_errors
    async def create_dir_all(self, path: StrPath, *, mode: int = 0o777) -> None:
        await aiofiles.os.makedirs(path, mode, exist_ok=True)

    @translate_os_errors
    async def remove_dir(self, path: StrPath) -> None:
        await aiofiles.os.rmdir(path)

    @translate_os_errors
    async def remove_dir_all(self, path: StrPath) -> None:
        await _rmtree(path)

    @translate_os_errors
    async def read_dir(self, path: StrPath) -> AsyncIODirEntryStream:
        # Opened eagerly so that a bad path fails here, not on the first entry.
        iterator = await aiofiles.os.scandir(path)
        return AsyncIODirEntryStream(iterator)

    @translate_os_errors
    async def metadata(self, path: StrPath) -> Metadata:
        return Metadata.from_stat(await aiofiles.os.stat(path))

    @translate_os_errors
    async def symlink_metadata(self, path: StrPath) -> Metadata:
        return Metadata.from_stat(await aiofiles.os.stat(path, follow_symlinks=False))

    @translate_os_errors
    async def canonicalize(self, path: StrPath) -> Path:
        return await _resolve(Path(path), strict=True)

    @translate_os_errors
    async def hard_link(self, src: StrPath, dst: StrPath) -> None:
        await aiofiles.os.link(src, dst)

    @translate_os_errors
    async def read_link(self, path: StrPath) -> Path:
        return Path(await aiofiles.os.readlink(path))

    @translate_os_errors
    async def set_permissions(self, path: StrPath, permissions: Permissions) -> None:
        await _chmod(path, permissions.mode)

    async def exists(self, path: StrPath) -> bool:
        return await aiofiles.ospath.exists(path)
