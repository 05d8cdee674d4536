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
"""aiocompat — one async API over asyncio and trio.

Interfaces, values and exceptions are importable directly. The concrete
names (``Executor``, ``Filesystem``, ``TcpListener``, ``open``,
``read_to_string``, ...) resolve on first access against the backend picked
by ``aiocompat.runtime.backend``; with ``none`` they raise
:class:`BackendNotEnabledError`.

``Executor`` is the bare class, so ``Executor()`` uses its own worker default.
``new_executor()`` builds one sized by ``aiocompat.runtime.blocking_max_workers``.

Usage::

    import aiocompat

    async with aiocompat.new_executor() as executor:
        handle = executor.spawn(compute, 2, 2)
        assert await handle == 4
"""

from __future__ import annotations

from typing import Any

from aiocompat.backend import Backend, load_backend, reset_selection, selected_backend
from aiocompat.core.config import Config
from aiocompat.fs.ports.outbound import DirEntryStreamPort, FilePort, FilesystemPort
from aiocompat.fs.types import DirEntry, FileType, Metadata, OpenOptions, Permissions
from aiocompat.kernel.exceptions import (
    AddrInUseException,
    AddrNotAvailableException,
    AioCompatException,
    AlreadyExistsException,
    BackendNotEnabledError,
    BackendUnavailableError,
    ConfigurationException,
    ConnectionRefusedException,
    ConnectionResetException,
    DirectoryNotEmptyException,
    FilesystemException,
    InvalidDataException,
    InvalidInputException,
    IOException,
    IsADirectoryException,
    NetworkException,
    NotADirectoryException,
    NotFoundException,
    PermissionDeniedException,
    SpawnError,
    TaskAbortedError,
    TaskError,
    TimedOutException,
)
from aiocompat.kernel.types import ErrorKind
from aiocompat.net.ports.outbound import ListenerPort, ReadHalfPort, SocketPort, WriteHalfPort
from aiocompat.net.types import SocketAddr, SocketState, UnixSocketAddr
from aiocompat.task.ports.outbound import (
    ExecutorPort,
    SpawnBlockingPort,
    SpawnPort,
    SpawnWithHandlePort,
    TaskHandlePort,
)

__version__ = "0.1.0"

_BACKEND_TYPES: dict[str, str] = {
    "Executor": "executor",
    "File": "file",
    "TcpListener": "tcp_listener",
    "TcpSocket": "tcp_socket",
    "UnixListener": "unix_listener",
    "UnixSocket": "unix_socket",
}

_FS_FUNCTIONS = frozenset(
    {
        "open",
        "create",
        "read",
        "read_to_string",
        "write",
        "copy",
        "rename",
        "remove_file",
        "create_dir",
        "create_dir_all",
        "remove_dir",
        "remove_dir_all",
        "read_dir",
        "metadata",
        "symlink_metadata",
        "canonicalize",
        "hard_link",
        "read_link",
        "set_permissions",
        "exists",
    }
)


def __getattr__(name: str) -> Any:
    if name in _BACKEND_TYPES:
        return getattr(selected_backend(), _BACKEND_TYPES[name])
    if name == "new_executor":
        return selected_backend().new_executor
    if name == "Filesystem":
        return type(selected_backend().filesystem)
    if name in _FS_FUNCTIONS:
        return getattr(selected_backend().filesystem, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "__version__",
    # Glue
    "Backend",
    "Config",
    "load_backend",
    "reset_selection",
    "selected_backend",
    # Task
    "ExecutorPort",
    "SpawnBlockingPort",
    "SpawnPort",
    "SpawnWithHandlePort",
    "TaskHandlePort",
    # Filesystem
    "DirEntry",
    "DirEntryStreamPort",
    "FilePort",
    "FileType",
    "FilesystemPort",
    "Metadata",
    "OpenOptions",
    "Permissions",
    # Network
    "ListenerPort",
    "ReadHalfPort",
    "SocketAddr",
    "SocketPort",
    "SocketState",
    "UnixSocketAddr",
    "WriteHalfPort",
    # Errors
    "ErrorKind",
    "AioCompatException",
    "TaskError",
    "SpawnError",
    "TaskAbortedError",
    "IOException",
    "FilesystemException",
    "NotFoundException",
    "PermissionDeniedException",
    "AlreadyExistsException",
    "IsADirectoryException",
    "NotADirectoryException",
    "DirectoryNotEmptyException",
    "InvalidInputException",
    "InvalidDataException",
    "NetworkException",
    "AddrInUseException",
    "AddrNotAvailableException",
    "ConnectionRefusedException",
    "ConnectionResetException",
    "TimedOutException",
    "ConfigurationException",
    "BackendUnavailableError",
    "BackendNotEnabledError",
]
