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
"""Unified exception hierarchy for aiocompat.

All library exceptions inherit from AioCompatException. Backend-native
errors are never leaked raw: adapters translate them into one of the
branches below and chain the original as ``__cause__``.

Categories:
- TaskError: spawning failures and abnormal task termination
- IOException: filesystem and network failures (also an ``OSError``)
- ConfigurationException: backend selection problems

Every filesystem/network class additionally subclasses the matching
builtin (``FileNotFoundError``, ``ConnectionRefusedError``, ...) so code
written against plain ``OSError`` keeps working.
"""

from __future__ import annotations

from aiocompat.kernel.types import ErrorKind


# =============================================================================
# Base Exception
# =============================================================================


class AioCompatException(Exception):
    """Base exception for all aiocompat errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "FS_NOT_FOUND").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Task Exceptions
# =============================================================================


class TaskError(AioCompatException):
    """A task could not be scheduled or did not finish normally."""


class SpawnError(TaskError):
    """The backend scheduler is unavailable (not running, or already stopped)."""


class TaskAbortedError(TaskError):
    """The task terminated abnormally (it was cancelled before producing a value)."""


# =============================================================================
# I/O Exceptions
# =============================================================================


class IOException(AioCompatException, OSError):
    """Generic I/O failure.

    Carries the unified :class:`ErrorKind` plus the ``errno`` and
    ``filename`` of the native error when known.
    """

    kind: ErrorKind = ErrorKind.OTHER

    def __init__(
        self,
        message: str,
        *,
        os_errno: int | None = None,
        filename: str | None = None,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message, code=code or self.kind.value, context=context)
        self.errno = os_errno
        self.strerror = message
        self.filename = filename


class FilesystemException(IOException):
    """Filesystem failure."""


class NotFoundException(FilesystemException, FileNotFoundError):
    kind = ErrorKind.NOT_FOUND


class PermissionDeniedException(FilesystemException, PermissionError):
    kind = ErrorKind.PERMISSION_DENIED


class AlreadyExistsException(FilesystemException, FileExistsError):
    kind = ErrorKind.ALREADY_EXISTS


class IsADirectoryException(FilesystemException, IsADirectoryError):
    kind = ErrorKind.IS_A_DIRECTORY


class NotADirectoryException(FilesystemException, NotADirectoryError):
    kind = ErrorKind.NOT_A_DIRECTORY


class DirectoryNotEmptyException(FilesystemException):
    kind = ErrorKind.DIRECTORY_NOT_EMPTY


class InvalidInputException(IOException, ValueError):
    """Arguments were rejected before or by the backend (EINVAL)."""

    kind = ErrorKind.INVALID_INPUT


class InvalidDataException(IOException, ValueError):
    """Data read from a resource was not in the expected format (e.g. not UTF-8)."""

    kind = ErrorKind.INVALID_DATA


class NetworkException(IOException):
    """Network failure."""


class AddrInUseException(NetworkException):
    kind = ErrorKind.ADDR_IN_USE


class AddrNotAvailableException(NetworkException):
    kind = ErrorKind.ADDR_NOT_AVAILABLE


class ConnectionRefusedException(NetworkException, ConnectionRefusedError):
    kind = ErrorKind.CONNECTION_REFUSED


class ConnectionResetException(NetworkException, ConnectionResetError):
    kind = ErrorKind.CONNECTION_RESET


class TimedOutException(NetworkException, TimeoutError):
    kind = ErrorKind.TIMED_OUT


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(AioCompatException):
    """Invalid or unsatisfiable configuration."""


class BackendUnavailableError(ConfigurationException):
    """The requested backend is not installed."""


class BackendNotEnabledError(ConfigurationException, AttributeError):
    """No backend is enabled, so no concrete type can be handed out."""
