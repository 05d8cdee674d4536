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
"""Trio filesystem adapter backed by ``trio.open_file``, ``trio.Path`` and ``trio.to_thread``."""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import anyio
import structlog
import trio
from anyio.abc import ByteReceiveStream, ByteSendStream

from aiocompat.fs.blocking import copy_file, next_entry
from aiocompat.fs.ports.outbound import StrPath
from aiocompat.fs.types import DirEntry, Metadata, OpenOptions, Permissions, decode_utf8
from aiocompat.kernel.errors import os_errors_translated, translate_os_error, translate_os_errors

logger = structlog.get_logger("aiocompat.fs.trio")


class TrioFile(ByteReceiveStream, ByteSendStream):
    """An open file driven through trio's async file wrapper."""

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
        await trio.to_thread.run_sync(os.fsync, self._file.fileno())

    @translate_os_errors
    async def sync_data(self) -> None:
        await self.flush()
        await trio.to_thread.run_sync(getattr(os, "fdatasync", os.fsync), self._file.fileno())

    @translate_os_errors
    async def set_len(self, size: int) -> None:
        self._check_open()
        await self._file.truncate(size)

    @translate_os_errors
    async def metadata(self) -> Metadata:
        self._check_open()
        return Metadata.from_stat(await trio.to_thread.run_sync(os.fstat, self._file.fileno()))

    @translate_os_errors
    async def set_permissions(self, permissions: Permissions) -> None:
        self._check_open()
        await trio.to_thread.run_sync(os.fchmod, self._file.fileno(), permissions.mode)

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
            await self._file.aclose()


class TrioDirEntryStream:
    """Directory entries fetched one worker-thread round trip at a time."""

    def __init__(self, iterator: Iterator[os.DirEntry[str]]) -> None:
        self._iterator: Iterator[os.DirEntry[str]] | None = iterator

    def __aiter__(self) -> TrioDirEntryStream:
        return self

    async def __anext__(self) -> DirEntry:
        if self._iterator is None:
            raise StopAsyncIteration
        try:
            entry = await trio.to_thread.run_sync(next_entry, self._iterator)
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


class TrioFilesystem:
    """Filesystem operations for the trio runtime."""

    @property
    def backend(self) -> str:
        return "trio"

    @translate_os_errors
    async def open(self, path: StrPath, options: OpenOptions | None = None) -> TrioFile:
        options = options or OpenOptions.for_reading()
        opener = options.opener()
        file = await trio.open_file(path, options.to_mode(), opener=opener)
        logger.debug("file_opened", backend="trio", path=os.fspath(path), mode=options.to_mode())
        return TrioFile(file, path)

    async def create(self, path: StrPath) -> TrioFile:
        return await self.open(path, OpenOptions.for_writing())

    @translate_os_errors
    async def read(self, path: StrPath) -> bytes:
        return await trio.Path(path).read_bytes()

    async def read_to_string(self, path: StrPath) -> str:
        return decode_utf8(await self.read(path), path)

    @translate_os_errors
    async def write(self, path: StrPath, contents: bytes | str) -> None:
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        await trio.Path(path).write_bytes(contents)

    @translate_os_errors
    async def copy(self, src: StrPath, dst: StrPath) -> int:
        return await trio.to_thread.run_sync(copy_file, os.fspath(src), os.fspath(dst))

    @translate_os_errors
    async def rename(self, src: StrPath, dst: StrPath) -> None:
        await trio.Path(src).replace(dst)

    @translate_os_errors
    async def remove_file(self, path: StrPath) -> None:
        await trio.Path(path).unlink()

    @translate_os_errors
    async def create_dir(self, path: StrPath, *, mode: int = 0o777) -> None:
        await trio.Path(path).mkdir(mode)

    @translate_os_errors
    async def create_dir_all(self, path: StrPath, *, mode: int = 0o777) -> None:
        await trio.Path(path).mkdir(mode, parents=True, exist_ok=True)

    @translate_os_errors
    async def remove_dir(self, path: StrPath) -> None:
        await trio.Path(path).rmdir()

    @translate_os_errors
    async def remove_dir_all(self, path: StrPath) -> None:
        await trio.to_thread.run_sync(shutil.rmtree, path)

    @translate_os_errors
    async def read_dir(self, path: StrPath) -> TrioDirEntryStream:
        iterator = await trio.to_thread.run_sync(os.scandir, path)
        return TrioDirEntryStream(iterator)

    @translate_os_errors
    async def metadata(self, path: StrPath) -> Metadata:
        return Metadata.from_stat(await trio.Path(path).stat())

    @translate_os_errors
    async def symlink_metadata(self, path: StrPath) -> Metadata:
        return Metadata.from_stat(await trio.Path(path).lstat())

    @translate_os_errors
    async def canonicalize(self, path: StrPath) -> Path:
        resolved = await trio.Path(path).resolve(strict=True)
        return Path(resolved)

    @translate_os_errors
    async def hard_link(self, src: StrPath, dst: StrPath) -> None:
        await trio.to_thread.run_sync(os.link, src, dst)

    @translate_os_errors
    async def read_link(self, path: StrPath) -> Path:
        return Path(await trio.Path(path).readlink())

    @translate_os_errors
    async def set_permissions(self, path: StrPath, permissions: Permissions) -> None:
        await trio.Path(path).chmod(permissions.mode)

    async def exists(self, path: StrPath) -> bool:
        return await trio.Path(path).exists()
