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
"""Translation of backend-native ``OSError`` values into the unified taxonomy."""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, ParamSpec, TypeVar

from aiocompat.kernel.exceptions import (
    AddrInUseException,
    AddrNotAvailableException,
    AlreadyExistsException,
    ConnectionRefusedException,
    ConnectionResetException,
    DirectoryNotEmptyException,
    InvalidInputException,
    IOException,
    IsADirectoryException,
    NotADirectoryException,
    NotFoundException,
    PermissionDeniedException,
    TimedOutException,
)
from aiocompat.kernel.types import ERRNO_KINDS, ErrorKind

P = ParamSpec("P")
R = TypeVar("R")

_KIND_EXCEPTIONS: dict[ErrorKind, type[IOException]] = {
    ErrorKind.NOT_FOUND: NotFoundException,
    ErrorKind.PERMISSION_DENIED: PermissionDeniedException,
    ErrorKind.ALREADY_EXISTS: AlreadyExistsException,
    ErrorKind.IS_A_DIRECTORY: IsADirectoryException,
    ErrorKind.NOT_A_DIRECTORY: NotADirectoryException,
    ErrorKind.DIRECTORY_NOT_EMPTY: DirectoryNotEmptyException,
    ErrorKind.INVALID_INPUT: InvalidInputException,
    ErrorKind.ADDR_IN_USE: AddrInUseException,
    ErrorKind.ADDR_NOT_AVAILABLE: AddrNotAvailableException,
    ErrorKind.CONNECTION_REFUSED: ConnectionRefusedException,
    ErrorKind.CONNECTION_RESET: ConnectionResetException,
    ErrorKind.TIMED_OUT: TimedOutException,
}


def error_kind(exc: OSError) -> ErrorKind:
    """Classify a native ``OSError`` by errno, falling back to its builtin subclass."""
    if exc.errno is not None and exc.errno in ERRNO_KINDS:
        return ERRNO_KINDS[exc.errno]
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMED_OUT
    return ErrorKind.OTHER


def translate_os_error(exc: OSError) -> IOException:
    """Build the unified exception for *exc*. The caller chains *exc* as the cause.

    Exceptions that already belong to the taxonomy are returned unchanged.
    """
    if isinstance(exc, IOException):
        return exc
    kind = error_kind(exc)
    exc_cls = _KIND_EXCEPTIONS.get(kind, IOException)
    filename = exc.filename if isinstance(exc.filename, str) else None
    if filename is None and exc.filename is not None:
        filename = str(exc.filename)
    message = exc.strerror or str(exc) or kind.value
    context: dict[str, Any] = {"native": type(exc).__name__}
    if exc.filename2 is not None:
        context["filename2"] = str(exc.filename2)
    return exc_cls(message, os_errno=exc.errno, filename=filename, context=context)


@contextmanager
def os_errors_translated() -> Iterator[None]:
    """Re-raise any ``OSError`` escaping the block as its unified equivalent."""
    try:
        yield
    except IOException:
        raise
    except OSError as exc:
        raise translate_os_error(exc) from exc


def translate_os_errors(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Decorator form of :func:`os_errors_translated` for coroutine functions."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with os_errors_translated():
            return await func(*args, **kwargs)

    return wrapper
