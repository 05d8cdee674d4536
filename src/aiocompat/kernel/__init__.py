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
"""aiocompat kernel — exception taxonomy, error translation and lifecycle."""

from aiocompat.kernel.errors import (
    error_kind,
    os_errors_translated,
    translate_os_error,
    translate_os_errors,
)
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
from aiocompat.kernel.lifecycle import Lifecycle
from aiocompat.kernel.types import ErrorKind

__all__ = [
    # Lifecycle
    "Lifecycle",
    # Types
    "ErrorKind",
    # Translation
    "error_kind",
    "os_errors_translated",
    "translate_os_error",
    "translate_os_errors",
    # Base
    "AioCompatException",
    # Task
    "TaskError",
    "SpawnError",
    "TaskAbortedError",
    # I/O
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
    # Configuration
    "ConfigurationException",
    "BackendUnavailableError",
    "BackendNotEnabledError",
]
