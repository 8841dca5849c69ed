# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .core import CompletionClient, LiteCompletionClient, Streamer, Swarm
from .types import (
    Agent,
    AgentFunction,
    AgentResult,
    ContextVariables,
    LoopControl,
    Message,
    Response,
    SwarmConfig,
    SwarmError,
    ValueResult,
)
from .utils import dedent_prompt, enable_logging, retry_with_exponential_backoff

__all__ = [
    "Agent",
    "AgentFunction",
    "AgentResult",
    "CompletionClient",
    "ContextVariables",
    "LiteCompletionClient",
    "LoopControl",
    "Message",
    "Response",
    "Streamer",
    "Swarm",
    "SwarmConfig",
    "SwarmError",
    "ValueResult",
    "dedent_prompt",
    "enable_logging",
    "retry_with_exponential_backoff",
]
