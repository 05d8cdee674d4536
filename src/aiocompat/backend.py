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
"""Backend bundles: one set of concrete adapters per runtime, and the selected one.

Adapters are imported only when their backend is loaded, so an
installation without trio never imports a trio adapter.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from aiocompat.config.auto import AutoConfiguration
from aiocompat.config.properties.runtime import RuntimeProperties
from aiocompat.core.config import Config
from aiocompat.fs.ports.outbound import FilesystemPort
from aiocompat.fs.types import OpenOptions
from aiocompat.kernel.exceptions import BackendNotEnabledError, BackendUnavailableError, ConfigurationException
from aiocompat.task.ports.outbound import ExecutorPort

logger = structlog.get_logger("aiocompat.backend")


@dataclass(frozen=True)
class Backend:
    """Concrete types of one runtime backend.

    Several bundles can coexist in one process; only :func:`selected_backend`
    is global.
    """

    name: str
    executor: type[Any]
    file: type[Any]
    filesystem: FilesystemPort
    tcp_listener: type[Any]
    tcp_socket: type[Any]
    unix_listener: type[Any]
    unix_socket: type[Any]
    properties: RuntimeProperties
    open_options: type[OpenOptions] = OpenOptions

    def new_executor(self) -> ExecutorPort:
        """An executor sized by ``aiocompat.runtime.blocking_max_workers``."""
        return self.executor(max_blocking_workers=self.properties.blocking_max_workers)


def _asyncio_backend(properties: RuntimeProperties) -> Backend:
    from aiocompat.fs.adapters.asyncio_fs import AsyncIOFile, AsyncIOFilesystem
    from aiocompat.net.adapters.asyncio_net import (
        AsyncIOTcpListener,
        AsyncIOTcpSocket,
        AsyncIOUnixListener,
        AsyncIOUnixSocket,
    )
    from aiocompat.task.adapters.asyncio_executor import AsyncIOExecutor

    return Backend(
        name="asyncio",
        executor=AsyncIOExecutor,
        file=AsyncIOFile,
        filesystem=AsyncIOFilesystem(),
        tcp_listener=AsyncIOTcpListener,
        tcp_socket=AsyncIOTcpSocket,
        unix_listener=AsyncIOUnixListener,
        unix_socket=AsyncIOUnixSocket,
        properties=properties,
    )


def _trio_backend(properties: RuntimeProperties) -> Backend:
    from aiocompat.fs.adapters.trio_fs import TrioFile, TrioFilesystem
    from aiocompat.net.adapters.trio_net import TrioTcpListener, TrioTcpSocket, TrioUnixListener, TrioUnixSocket
    from aiocompat.task.adapters.trio_executor import TrioExecutor

    return Backend(
        name="trio",
        executor=TrioExecutor,
        file=TrioFile,
        filesystem=TrioFilesystem(),
        tcp_listener=TrioTcpListener,
        tcp_socket=TrioTcpSocket,
        unix_listener=TrioUnixListener,
        unix_socket=TrioUnixSocket,
        properties=properties,
    )


_BUILDERS: dict[str, Callable[[RuntimeProperties], Backend]] = {
    "asyncio": _asyncio_backend,
    "trio": _trio_backend,
}


def load_backend(name: str, properties: RuntimeProperties | None = None) -> Backend:
    """Import the adapters of backend *name* and bundle them.

    Raises:
        BackendNotEnabledError: *name* is ``"none"``.
        BackendUnavailableError: the backend's packages are not installed.
        ConfigurationException: *name* is not a known backend.
    """
    if name == "none":
        raise BackendNotEnabledError(
            "No runtime backend is enabled (aiocompat.runtime.backend=none)",
            code="BACKEND_NOT_ENABLED",
        )
    builder = _BUILDERS.get(name)
    if builder is None:
        raise ConfigurationException(
            f"Unknown backend '{name}'",
            code="UNKNOWN_BACKEND",
            context={"known": sorted(_BUILDERS)},
        )
    try:
        backend = builder(properties or RuntimeProperties())
    except ImportError as exc:
        raise BackendUnavailableError(
            f"Backend '{name}' cannot be loaded: {exc}",
            code="BACKEND_UNAVAILABLE",
            context={"backend": name, "module": exc.name},
        ) from exc
    logger.debug("backend_loaded", backend=name)
    return backend


@functools.cache
def selected_backend() -> Backend:
    """The backend chosen by configuration, resolved once per process.

    Reads ``aiocompat.runtime.*`` from the sources in the current directory
    and the ``AIOCOMPAT_RUNTIME_*`` environment variables.
    """
    properties = Config.from_sources(Path.cwd()).bind(RuntimeProperties)
    return load_backend(AutoConfiguration.resolve_backend(properties), properties)


def reset_selection() -> None:
    """Forget the cached selection so the next access re-reads configuration."""
    selected_backend.cache_clear()
