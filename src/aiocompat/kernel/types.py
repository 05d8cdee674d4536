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
"""Error kinds shared by every backend adapter."""

from __future__ import annotations

import errno
from enum import Enum


class ErrorKind(Enum):
    """Backend-independent classification of an I/O failure."""

    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    IS_A_DIRECTORY = "IS_A_DIRECTORY"
    NOT_A_DIRECTORY = "NOT_A_DIRECTORY"
    DIRECTORY_NOT_EMPTY = "DIRECTORY_NOT_EMPTY"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_DATA = "INVALID_DATA"
    ADDR_IN_USE = "ADDR_IN_USE"
    ADDR_NOT_AVAILABLE = "ADDR_NOT_AVAILABLE"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    CONNECTION_RESET = "CONNECTION_RESET"
    TIMED_OUT = "TIMED_OUT"
    OTHER = "OTHER"


ERRNO_KINDS: dict[int, ErrorKind] = {
    errno.ENOENT: ErrorKind.NOT_FOUND,
    errno.EACCES: ErrorKind.PERMISSION_DENIED,
    errno.EPERM: ErrorKind.PERMISSION_DENIED,
    errno.EEXIST: ErrorKind.ALREADY_EXISTS,
    errno.EISDIR: ErrorKind.IS_A_DIRECTORY,
    errno.ENOTDIR: ErrorKind.NOT_A_DIRECTORY,
    errno.ENOTEMPTY: ErrorKind.DIRECTORY_NOT_EMPTY,
    errno.EINVAL: ErrorKind.INVALID_INPUT,
    errno.EADDRINUSE: ErrorKind.ADDR_IN_USE,
    errno.EADDRNOTAVAIL: ErrorKind.ADDR_NOT_AVAILABLE,
    errno.ECONNREFUSED: ErrorKind.CONNECTION_REFUSED,
    errno.ECONNRESET: ErrorKind.CONNECTION_RESET,
    errno.ETIMEDOUT: ErrorKind.TIMED_OUT,
}
