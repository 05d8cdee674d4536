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
"""Synchronous helpers that adapters run on their blocking pools."""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterator

from aiocompat.fs.types import DirEntry


def copy_file(src: str, dst: str) -> int:
    """Copy file contents and permission bits; return the size of *dst*."""
    shutil.copyfile(src, dst)
    shutil.copymode(src, dst)
    return os.stat(dst).st_size


def next_entry(iterator: Iterator[os.DirEntry[str]]) -> DirEntry | None:
    """Advance a scandir iterator by one entry; ``None`` once exhausted."""
    entry = next(iterator, None)
    if entry is None:
        return None
    return DirEntry.from_os(entry)
