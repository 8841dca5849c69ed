# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .completion import CompletionClient, LiteCompletionClient, build_completion_request
from .function_dispatcher import FunctionDispatcher
from .streamer import Streamer, iter_stream_messages
from .swarm import Swarm

__all__ = [
    "CompletionClient",
    "FunctionDispatcher",
    "LiteCompletionClient",
    "Streamer",
    "Swarm",
    "build_completion_request",
    "iter_stream_messages",
]
