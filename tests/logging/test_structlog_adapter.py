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
"""Tests for StructlogAdapter and configure_logging."""

import logging
from typing import Any

import pytest

from aiocompat.core.config import Config
from aiocompat.kernel.exceptions import ConfigurationException
from aiocompat.logging import configure_logging
from aiocompat.logging.port import LoggingPort
from aiocompat.logging.structlog_adapter import StructlogAdapter


class TestLoggingPortProtocol:
    def test_adapter_implements_port(self):
        assert isinstance(StructlogAdapter(), LoggingPort)

    def test_non_conforming_class_is_not_instance(self):
        class Incomplete:
            def get_logger(self, name: str) -> Any:
                pass

        assert not isinstance(Incomplete(), LoggingPort)


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter.root_level == "INFO"
        assert adapter.format == "console"

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"aiocompat": {"logging": {"level": {"root": "debug"}}}}))
        assert adapter.root_level == "DEBUG"

    def test_configure_reads_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"aiocompat": {"logging": {"format": "JSON"}}}))
        assert adapter.format == "json"

    def test_configure_rejects_unknown_format(self):
        adapter = StructlogAdapter()
        with pytest.raises(ConfigurationException) as info:
            adapter.configure(Config({"aiocompat": {"logging": {"format": "xml"}}}))
        assert info.value.code == "INVALID_LOG_FORMAT"

    def test_configure_applies_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"aiocompat": {"logging": {"level": {"root": "INFO", "aiocompat.net.asyncio": "DEBUG"}}}})
        adapter.configure(config)
        assert logging.getLogger("aiocompat.net.asyncio").level == logging.DEBUG

    def test_format_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AIOCOMPAT_LOGGING_FORMAT", "json")
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter.format == "json"


class TestStructlogAdapterLoggers:
    def test_get_logger_returns_bound_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        logger = adapter.get_logger("aiocompat.test")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "debug", None))

    def test_set_level(self):
        adapter = StructlogAdapter()
        adapter.set_level("aiocompat.task.trio", "warning")
        assert logging.getLogger("aiocompat.task.trio").level == logging.WARNING


class TestConfigureLogging:
    def test_returns_configured_adapter(self):
        adapter = configure_logging(Config({"aiocompat": {"logging": {"format": "json"}}}))
        assert isinstance(adapter, StructlogAdapter)
        assert adapter.format == "json"
