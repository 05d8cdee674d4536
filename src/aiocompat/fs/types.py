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
"""Backend-independent filesystem values: open options, metadata, directory entries."""

from __future__ import annotations

import os
import stat
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from aiocompat.kernel.exceptions import InvalidDataException, InvalidInputException


class FileType(Enum):
    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> FileType:
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISDIR(mode):
            return cls.DIR
        if stat.S_ISREG(mode):
            return cls.FILE
        return cls.OTHER


@dataclass(frozen=True)
class Permissions:
    """Permission bits of a file (``st_mode & 0o7777``)."""

    mode: int

    @property
    def readonly(self) -> bool:
        return not self.mode & (stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH)

    def with_readonly(self, readonly: bool) -> Permissions:
        write_bits = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH
        if readonly:
            return Permissions(self.mode & ~write_bits)
        return Permissions(self.mode | stat.S_IWUSR)


def _timestamp(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=UTC)


@dataclass(frozen=True)
class Metadata:
    """Snapshot of a file's metadata, built from ``os.stat_result``."""

    len: int
    file_type: FileType
    permissions: Permissions
    modified: datetime | None
    accessed: datetime | None
    created: datetime | None

    @classmethod
    def from_stat(cls, st: os.stat_result) -> Metadata:
        return cls(
            len=st.st_size,
            file_type=FileType.from_mode(st.st_mode),
            permissions=Permissions(stat.S_IMODE(st.st_mode)),
            modified=_timestamp(st.st_mtime),
            accessed=_timestamp(st.st_atime),
            created=_timestamp(getattr(st, "st_birthtime", None)),
        )

    @property
    def is_file(self) -> bool:
        return self.file_type is FileType.FILE

    @property
    def is_dir(self) -> bool:
        return self.file_type is FileType.DIR

    @property
    def is_symlink(self) -> bool:
        return self.file_type is FileType.SYMLINK


@dataclass(frozen=True)
class DirEntry:
    """One entry produced by a directory-entry stream."""

    path: Path
    file_name: str
    file_type: FileType

    @classmethod
    def from_os(cls, entry: os.DirEntry[str]) -> DirEntry:
        """Build from an ``os.scandir`` entry. May stat the entry; call off the event loop."""
        if entry.is_symlink():
            file_type = FileType.SYMLINK
        elif entry.is_dir(follow_symlinks=False):
            file_type = FileType.DIR
        elif entry.is_file(follow_symlinks=False):
            file_type = FileType.FILE
        else:
            file_type = FileType.OTHER
        return cls(path=Path(entry.path), file_name=entry.name, file_type=file_type)


@dataclass(frozen=True)
class OpenOptions:
    """Flags controlling how a file is opened.

    Mirrors POSIX ``open(2)``: at least one of ``read``/``write``/``append``
    must be set; ``create``, ``create_new`` and ``truncate`` need write
    access; ``truncate`` cannot be combined with ``append``. ``create_new``
    fails with ``AlreadyExistsException`` when the path exists and ignores
    ``create``/``truncate``.

    Usage:
        options = OpenOptions(write=True, create_new=True)
        file = await fs.open("report.csv", options)
    """

    read: bool = False
    write: bool = False
    append: bool = False
    truncate: bool = False
    create: bool = False
    create_new: bool = False
    mode: int = 0o666

    @classmethod
    def for_reading(cls) -> OpenOptions:
        return cls(read=True)

    @classmethod
    def for_writing(cls) -> OpenOptions:
        """Write-only, creating the file if needed and truncating it otherwise."""
        return cls(write=True, create=True, truncate=True)

    @classmethod
    def for_appending(cls) -> OpenOptions:
        return cls(append=True, create=True)

    def validate(self) -> None:
        """Raise ``InvalidInputException`` for combinations ``open(2)`` cannot express."""
        writable = self.write or self.append
        if not (self.read or writable):
            raise InvalidInputException("OpenOptions must request read, write or append access")
        if not writable and (self.truncate or self.create or self.create_new):
            raise InvalidInputException("create, create_new and truncate require write or append access")
        if self.append and self.truncate and not self.create_new:
            raise InvalidInputException("truncate cannot be combined with append")

    def to_flags(self) -> int:
        """``os.open`` flags for these options. Validates first."""
        self.validate()
        writable = self.write or self.append
        if self.read and writable:
            flags = os.O_RDWR
        elif writable:
            flags = os.O_WRONLY
        else:
            flags = os.O_RDONLY
        if self.append:
            flags |= os.O_APPEND
        if self.create_new:
            flags |= os.O_CREAT | os.O_EXCL
        else:
            if self.create:
                flags |= os.O_CREAT
            if self.truncate:
                flags |= os.O_TRUNC
        return flags | getattr(os, "O_CLOEXEC", 0) | getattr(os, "O_BINARY", 0)

    def to_mode(self) -> str:
        """Binary ``open()`` mode string with matching readable/writable sides.

        The real flags come from :meth:`to_flags` through an opener; the mode
        string only tells ``open()`` which buffer type to build.
        """
        if self.append:
            return "a+b" if self.read else "ab"
        if self.write:
            return "r+b" if self.read else "wb"
        return "rb"

    def opener(self) -> Callable[[str, int], int]:
        """An ``open()`` opener that ignores the flags derived from the mode string."""
        flags = self.to_flags()
        mode = self.mode

        def _open(path: str, _flags: int) -> int:
            return os.open(path, flags, mode)

        return _open


def decode_utf8(data: bytes, path: str | os.PathLike[str]) -> str:
    """Decode file contents the way ``read_to_string`` promises: strict UTF-8."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidDataException("stream did not contain valid UTF-8", filename=os.fspath(path)) from exc
