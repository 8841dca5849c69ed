# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .completion import ChatCompletionChunk, ChatCompletionResponse, CompletionRequest, Delta
from .config import LoopControl, SwarmConfig
from .context import CONTEXT_VARIABLES_KEY, END_LOOP_KEY, END_LOOP_SENTINEL, ContextVariables
from .exceptions import (
    AgentNotFoundError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    DeserializationError,
    FunctionError,
    InvalidInputError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    StepProgramError,
    StreamError,
    SwarmError,
)
from .steps import Step, StepAction, Steps
from .swarm import (
    Agent,
    AgentFunction,
    AgentInstructions,
    AgentResult,
    ContextResult,
    FunctionCall,
    FunctionMessage,
    FunctionReturn,
    Message,
    Response,
    ResultType,
    ValueResult,
)

__all__ = [
    "CONTEXT_VARIABLES_KEY",
    "END_LOOP_KEY",
    "END_LOOP_SENTINEL",
    "APIError",
    "Agent",
    "AgentFunction",
    "AgentInstructions",
    "AgentNotFoundError",
    "AgentResult",
    "AuthenticationError",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "CompletionRequest",
    "ConfigurationError",
    "ContextResult",
    "ContextVariables",
    "Delta",
    "DeserializationError",
    "FunctionCall",
    "FunctionError",
    "FunctionMessage",
    "FunctionReturn",
    "InvalidInputError",
    "LoopControl",
    "Message",
    "NetworkError",
    "RateLimitError",
    "RequestTimeoutError",
    "Response",
    "ResultType",
    "Step",
    "StepAction",
    "StepProgramError",
    "Steps",
    "StreamError",
    "SwarmConfig",
    "SwarmError",
    "ValueResult",
]
