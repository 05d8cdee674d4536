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
"""Backend detection: which runtimes are installed, and which one is switched on."""

from __future__ import annotations

import importlib

import structlog

from aiocompat.config.properties.runtime import RuntimeProperties
from aiocompat.kernel.exceptions import BackendUnavailableError, ConfigurationException

logger = structlog.get_logger("aiocompat.config.auto")

# Backend name -> third-party module its adapters cannot import without.
BACKEND_REQUIREMENTS: dict[str, str] = {
    "asyncio": "aiofiles",
    "trio": "trio",
}

# Order in which ``auto`` picks a backend.
AUTO_PRIORITY: tuple[str, ...] = ("asyncio", "trio")


class AutoConfiguration:
    """Detect available backends by checking importable packages."""

    @staticmethod
    def is_available(module_name: str) -> bool:
        """Check if a Python package is importable."""
        try:
            importlib.import_module(module_name)
            return True
        except ImportError:
            return False

    @staticmethod
    def available_backends() -> list[str]:
        """Names of every backend whose requirements are installed, in priority order."""
        return [name for name in AUTO_PRIORITY if AutoConfiguration.is_available(BACKEND_REQUIREMENTS[name])]

    @staticmethod
    def detect_backend() -> str:
        """Detect the best available backend.

        Priority: asyncio -> trio. Returns ``"none"`` when neither is installed.
        """
        available = AutoConfiguration.available_backends()
        return available[0] if available else "none"

    @staticmethod
    def resolve_backend(properties: RuntimeProperties) -> str:
        """Turn the configured switch into the name of exactly one backend, or ``"none"``.

        Raises:
            BackendUnavailableError: an explicitly requested backend is not installed.
        """
        requested = properties.backend
        if requested == "none":
            logger.info("backend_selected", backend="none", reason="disabled")
            return "none"
        if requested == "auto":
            chosen = AutoConfiguration.detect_backend()
            logger.info("backend_selected", backend=chosen, reason="auto")
            return chosen
        if requested not in BACKEND_REQUIREMENTS:
            raise ConfigurationException(f"Unknown backend '{requested}'")
        requirement = BACKEND_REQUIREMENTS[requested]
        if not AutoConfiguration.is_available(requirement):
            raise BackendUnavailableError(
                f"Backend '{requested}' requires the '{requirement}' package, which is not installed",
                code="BACKEND_UNAVAILABLE",
                context={"backend": requested, "requirement": requirement},
            )
        logger.info("backend_selected", backend=requested, reason="configured")
        return requested
