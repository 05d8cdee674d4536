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
"""Filesystem capability ports.

Every path argument accepts ``str`` or any ``os.PathLike``. Failures are
raised as the unified taxonomy (``NotFoundException``,
``PermissionDeniedException``, ``AlreadyExistsException``,
``IsADirectoryException``, ``NotADirectoryException``, ...).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from aiocompat.fs.types import DirEntry, Metadata, OpenOptions, Permissions

StrPath = str | os.PathLike[str]


@runtime_checkable
class FilePort(Protocol):
    """An open file.

    Also an ``anyio.abc.ByteReceiveStream`` and ``ByteSendStream``, so it can
    be wrapped by anyio's buffered and text streams.
    """

    async def read(self, size: int = -1) -> bytes: ...

    async def write(self, data: bytes) -> int: ...

    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the cursor (``SEEK_SET`` absolute, ``SEEK_CUR`` relative, ``SEEK_END`` from end)."""
        ...

    async def tell(self) -> int: ...

    async def flush(self) -> None: ...

    async def sync_all(self) -> None:
        """Flush and ``fsync`` data and metadata to disk."""
        ...

    async def sync_data(self) -> None:
        """Flush and ``fdatasync`` data to disk."""
        ...

    async def set_len(self, size: int) -> None: ...

    async def metadata(self) -> Metadata: ...

    async def set_permissions(self, permissions: Permissions) -> None: ...

    async def receive(self, max_bytes: int = 65536) -> bytes: ...

    async def send(self, item: bytes) -> None: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class DirEntryStreamPort(Protocol):
    """Lazy, finite, non-restartable stream of directory entries."""

    def __aiter__(self) -> DirEntryStreamPort: ...

    async def __anext__(self) -> DirEntry: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class FilesystemPort(Protocol):
    """One-shot filesystem operations plus ``open``/``read_dir``."""

    @property
    def backend(self) -> str: ...

    async def open(self, path: StrPath, options: OpenOptions | None = None) -> FilePort:
        """Open *path* with *options* (read-only when omitted)."""
        ...

    async def create(self, path: StrPath) -> FilePort:
        """Open *path* write-only, creating or truncating it."""
        ...

    async def read(self, path: StrPath) -> bytes: ...

    async def read_to_string(self, path: StrPath) -> str: ...

    async def write(self, path: StrPath, contents: bytes | str) -> None: ...

    async def copy(self, src: StrPath, dst: StrPath) -> int:
        """Copy contents and permission bits. Returns the number of bytes copied."""
        ...

    async def rename(self, src: StrPath, dst: StrPath) -> None:
        """Rename, replacing *dst* if it exists."""
        ...

    async def remove_file(self, path: StrPath) -> None: ...

    async def create_dir(self, path: StrPath, *, mode: int = 0o777) -> None: ...

    async def create_dir_all(self, path: StrPath, *, mode: int = 0o777) -> None: ...

    async def remove_dir(self, path: StrPath) -> None: ...

    async def remove_dir_all(self, path: StrPath) -> None: ...

    async def read_dir(self, path: StrPath) -> DirEntryStreamPort: ...

    async def metadata(self, path: StrPath) -> Metadata: ...

    async def symlink_metadata(self, path: StrPath) -> Metadata: ...

    async def canonicalize(self, path: StrPath) -> Path: ...

    async def hard_link(self, src: StrPath, dst: StrPath) -> None: ...

    async def read_link(self, path: StrPath) -> Path: ...

    async def set_permissions(self, path: StrPath, permissions: Permissions) -> None: ...

    async def exists(self, path: StrPath) -> bool: ...
