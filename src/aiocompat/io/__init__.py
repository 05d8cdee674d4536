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
"""aiocompat io — byte-stream helpers shared by every backend.

Files, sockets and split halves all speak the anyio stream ABCs, so the
anyio utilities work on them unchanged:

- ``wrap_file`` turns a blocking file object into an async one.
- ``BufferedByteReceiveStream`` adds ``receive_exactly``/``receive_until``.
- ``StapledByteStream`` joins a send and a receive stream into one.
- ``TextReceiveStream``/``TextSendStream`` decode and encode text.
"""

from anyio import wrap_file
from anyio.abc import ByteReceiveStream, ByteSendStream, ByteStream
from anyio.streams.buffered import BufferedByteReceiveStream
from anyio.streams.stapled import StapledByteStream
from anyio.streams.text import TextReceiveStream, TextSendStream

from aiocompat.io.compat import AsyncIOStreamCompat
from aiocompat.io.streams import BufferedByteSendStream, copy, read_to_end

__all__ = [
    # Contracts
    "ByteReceiveStream",
    "ByteSendStream",
    "ByteStream",
    # Adapters
    "AsyncIOStreamCompat",
    "BufferedByteReceiveStream",
    "BufferedByteSendStream",
    "StapledByteStream",
    "TextReceiveStream",
    "TextSendStream",
    "wrap_file",
    # Helpers
    "copy",
    "read_to_end",
]
