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
"""structlog implementation of :class:`~aiocompat.logging.port.LoggingPort`."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from aiocompat.config.properties.logging import LoggingProperties
from aiocompat.core.config import Config
from aiocompat.kernel.exceptions import ConfigurationException

_RENDERERS: dict[str, type[Any]] = {
    "console": structlog.dev.ConsoleRenderer,
    "json": structlog.processors.JSONRenderer,
}

FORMATS = tuple(_RENDERERS)

_SHARED_PROCESSORS: tuple[structlog.types.Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
)


def _level_number(level: str) -> int:
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


class StructlogAdapter:
    """Routes structlog events through stdlib logging, rendered as console text or JSON."""

    def __init__(self) -> None:
        self._root_level = "INFO"
        self._format = "console"

    @property
    def format(self) -> str:
        return self._format

    @property
    def root_level(self) -> str:
        return self._root_level

    def configure(self, config: Config) -> None:
        """Apply ``aiocompat.logging.*``: output format, root level and per-logger levels."""
        properties = config.bind(LoggingProperties)
        fmt = str(properties.format).lower()
        renderer = _RENDERERS.get(fmt)
        if renderer is None:
            raise ConfigurationException(
                f"Unknown log format '{properties.format}'",
                code="INVALID_LOG_FORMAT",
                context={"allowed": list(FORMATS)},
            )
        levels = {name: str(level).upper() for name, level in dict(properties.level).items()}
        self._format = fmt
        self._root_level = levels.pop("root", "INFO")

        structlog.configure(
            processors=[*_SHARED_PROCESSORS, renderer()],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
        logging.basicConfig(format="%(message)s", stream=sys.stdout, level=_level_number(self._root_level), force=True)
        for name, level in levels.items():
            self.set_level(name, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        """Set the level of one stdlib logger, e.g. ``aiocompat.net.asyncio``."""
        logging.getLogger(name).setLevel(_level_number(level))
