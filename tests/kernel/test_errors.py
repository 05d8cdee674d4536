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
"""Tests for native OSError translation."""

from __future__ import annotations

import errno

import pytest

from aiocompat.kernel.errors import error_kind, os_errors_translated, translate_os_error, translate_os_errors
from aiocompat.kernel.exceptions import (
    AddrInUseException,
    ConnectionRefusedException,
    DirectoryNotEmptyException,
    IOException,
    NotFoundException,
    PermissionDeniedException,
    TimedOutException,
)
from aiocompat.kernel.types import ErrorKind


class TestErrorKind:
    @pytest.mark.parametrize(
        ("code", "kind"),
        [
            (errno.ENOENT, ErrorKind.NOT_FOUND),
            (errno.EACCES, ErrorKind.PERMISSION_DENIED),
            (errno.EEXIST, ErrorKind.ALREADY_EXISTS),
            (errno.ENOTEMPTY, ErrorKind.DIRECTORY_NOT_EMPTY),
            (errno.EADDRINUSE, ErrorKind.ADDR_IN_USE),
            (errno.ECONNREFUSED, ErrorKind.CONNECTION_REFUSED),
        ],
    )
    def test_classifies_by_errno(self, code: int, kind: ErrorKind) -> None:
        assert error_kind(OSError(code, "x")) is kind

    def test_unknown_errno_is_other(self) -> None:
        assert error_kind(OSError(errno.EIO, "io")) is ErrorKind.OTHER

    def test_timeout_without_errno(self) -> None:
        assert error_kind(TimeoutError("slow")) is ErrorKind.TIMED_OUT


class TestTranslateOsError:
    def test_not_found_keeps_details(self) -> None:
        native = FileNotFoundError(errno.ENOENT, "No such file or directory", "/nope")
        exc = translate_os_error(native)
        assert isinstance(exc, NotFoundException)
        assert isinstance(exc, FileNotFoundError)
        assert exc.errno == errno.ENOENT
        assert exc.filename == "/nope"
        assert exc.context["native"] == "FileNotFoundError"

    def test_maps_network_errors(self) -> None:
        assert isinstance(translate_os_error(OSError(errno.EADDRINUSE, "in use")), AddrInUseException)
        assert isinstance(translate_os_error(ConnectionRefusedError(errno.ECONNREFUSED, "refused")), ConnectionRefusedException)
        assert isinstance(translate_os_error(TimeoutError()), TimedOutException)

    def test_second_filename_recorded(self) -> None:
        native = OSError(errno.ENOTEMPTY, "Directory not empty", "/a", None, "/b")
        exc = translate_os_error(native)
        assert isinstance(exc, DirectoryNotEmptyException)
        assert exc.context["filename2"] == "/b"

    def test_unknown_errno_is_generic(self) -> None:
        exc = translate_os_error(OSError(errno.EIO, "I/O error"))
        assert type(exc) is IOException
        assert exc.kind is ErrorKind.OTHER

    def test_already_translated_is_returned_unchanged(self) -> None:
        exc = PermissionDeniedException("nope")
        assert translate_os_error(exc) is exc


class TestTranslationHelpers:
    def test_context_manager_chains_native_error(self) -> None:
        native = PermissionError(errno.EACCES, "Permission denied")
        with pytest.raises(PermissionDeniedException) as info:
            with os_errors_translated():
                raise native
        assert info.value.__cause__ is native

    def test_context_manager_ignores_other_exceptions(self) -> None:
        with pytest.raises(KeyError):
            with os_errors_translated():
                raise KeyError("k")

    @pytest.mark.asyncio
    async def test_decorator(self) -> None:
        @translate_os_errors
        async def fails(path: str) -> None:
            raise FileNotFoundError(errno.ENOENT, "missing", path)

        with pytest.raises(NotFoundException) as info:
            await fails("/x")
        assert info.value.filename == "/x"
        assert fails.__name__ == "fails"
