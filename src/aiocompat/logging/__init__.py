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
"""aiocompat logging — structlog setup driven by ``aiocompat.logging.*``.

The library never configures logging on import; applications call
:func:`configure_logging` (or use their own structlog setup).
"""

from __future__ import annotations

from pathlib import Path

from aiocompat.core.config import Config
from aiocompat.logging.port import LoggingPort
from aiocompat.logging.structlog_adapter import StructlogAdapter


def configure_logging(config: Config | None = None) -> LoggingPort:
    """Apply logging configuration and return the adapter that did it.

    Without *config*, sources are loaded from the current directory.
    """
    adapter = StructlogAdapter()
    adapter.configure(config if config is not None else Config.from_sources(Path.cwd()))
    return adapter


__all__ = ["LoggingPort", "StructlogAdapter", "configure_logging"]
