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
"""Runtime backend configuration properties."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from aiocompat.core.config import config_properties

BackendName = Literal["auto", "asyncio", "trio", "none"]


@config_properties(prefix="aiocompat.runtime")
class RuntimeProperties(BaseModel):
    """Backend selection and tuning (aiocompat.runtime.*).

    ``backend`` is the build-time switch: exactly one backend, or ``none``.
    """

    backend: BackendName = "auto"
    blocking_max_workers: int = Field(default=16, ge=1)
