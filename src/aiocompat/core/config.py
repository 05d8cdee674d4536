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
"""Layered configuration: packaged defaults, YAML/TOML files, env vars, typed binding."""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]

from aiocompat.kernel.exceptions import ConfigurationException

T = TypeVar("T")

_CONFIG_PROPERTIES_ATTR = "__aiocompat_config_prefix__"

_ENV_PREFIX = "AIOCOMPAT_"

_FILE_NAMES = ("aiocompat.yaml", "aiocompat.toml")

_SCALAR_PARSERS: dict[Any, Callable[[str], Any]] = {
    int: int,
    float: float,
    bool: lambda raw: raw.lower() in ("true", "1", "yes"),
}


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass or Pydantic model as bindable to a configuration prefix.

    Usage:
        @config_properties(prefix="aiocompat.runtime")
        @dataclass
        class RuntimeProperties:
            backend: str = "auto"
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = _merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


def _read_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with open(path, "rb") as f:
            return tomllib.load(f)
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _read_defaults() -> dict[str, Any]:
    resource = importlib.resources.files("aiocompat.resources").joinpath("aiocompat-defaults.yaml")
    return yaml.safe_load(resource.read_text()) or {}


class Config:
    """Nested configuration values with dot-notation access.

    Environment variables win over file values: ``aiocompat.runtime.backend``
    is overridden by ``AIOCOMPAT_RUNTIME_BACKEND``.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Config files merged into this instance, in merge order."""
        return list(self._loaded_sources)

    @classmethod
    def from_sources(cls, base_dir: str | Path, load_defaults: bool = True) -> Config:
        """Merge the packaged defaults with the files found under *base_dir*.

        Later sources win: defaults, then ``config/aiocompat.{yaml,toml}``,
        then ``aiocompat.{yaml,toml}`` in *base_dir* itself.
        """
        base_dir = Path(base_dir)
        data = _read_defaults() if load_defaults else {}
        sources: list[str] = []
        for candidate in (d / name for d in (base_dir / "config", base_dir) for name in _FILE_NAMES):
            if candidate.is_file():
                data = _merge(data, _read_file(candidate))
                sources.append(str(candidate))
        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @staticmethod
    def env_key(key: str) -> str:
        """Environment variable consulted for *key*."""
        return _ENV_PREFIX + key.removeprefix("aiocompat.").upper().replace(".", "_").replace("-", "_")

    def _lookup(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
        return current

    def get(self, key: str, default: Any = None) -> Any:
        env_val = os.environ.get(self.env_key(key))
        if env_val is not None:
            return env_val
        value = self._lookup(key)
        return default if value is None else value

    def get_section(self, prefix: str) -> dict[str, Any]:
        """All file values under *prefix*; empty when the prefix is absent."""
        section = self._lookup(prefix)
        return section if isinstance(section, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Bind the section named by ``@config_properties`` to *config_cls*.

        Environment overrides apply per field, so ``AIOCOMPAT_RUNTIME_BACKEND``
        wins over a ``backend`` entry in a file.
        """
        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ConfigurationException(f"{config_cls.__name__} is not decorated with @config_properties")

        from pydantic import BaseModel, ValidationError

        if issubclass(config_cls, BaseModel):
            values = dict(self.get_section(prefix))
            for name in config_cls.model_fields:
                value = self.get(f"{prefix}.{name}")
                if value is not None:
                    values[name] = value
            try:
                return config_cls.model_validate(values)
            except ValidationError as exc:
                raise ConfigurationException(
                    f"Configuration validation failed for '{config_cls.__name__}' (prefix='{prefix}'):\n{exc}"
                ) from exc

        hints = get_type_hints(config_cls)
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            value = self.get(f"{prefix}.{field.name}")
            if value is None:
                continue
            parser = _SCALAR_PARSERS.get(hints.get(field.name))
            kwargs[field.name] = parser(value) if parser is not None and isinstance(value, str) else value
        return config_cls(**kwargs)
