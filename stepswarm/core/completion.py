# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from collections.abc import Sequence
from typing import Any, Protocol

import httpx
from litellm import CustomStreamWrapper, acompletion, stream_chunk_builder
from litellm import exceptions as litellm_exceptions
from pydantic import ValidationError

from stepswarm.types.completion import ChatCompletionResponse, CompletionRequest
from stepswarm.types.config import SwarmConfig
from stepswarm.types.context import ContextVariables
from stepswarm.types.exceptions import (
    APIError,
    AuthenticationError,
    DeserializationError,
    InvalidInputError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)
from stepswarm.types.swarm import Agent, Message
from stepswarm.utils.function import function_to_json
from stepswarm.utils.logging import log_verbose
from stepswarm.utils.messages import dump_messages
from stepswarm.utils.misc import unwrap_instructions
from stepswarm.utils.steps import strip_step_program

_API_STATUS_ERRORS = (
    litellm_exceptions.BadRequestError,
    litellm_exceptions.NotFoundError,
    litellm_exceptions.PermissionDeniedError,
    litellm_exceptions.UnprocessableEntityError,
    litellm_exceptions.ServiceUnavailableError,
    litellm_exceptions.InternalServerError,
    litellm_exceptions.APIError,
)


class CompletionClient(Protocol):
    """Protocol for clients that perform one model round-trip.

    Implementations issue exactly one request per call, never retry, and
    translate transport failures into `SwarmError` subclasses.

    Example:
    ```python
    class ScriptedClient(CompletionClient):
        def __init__(self, responses: list[ChatCompletionResponse]) -> None:
            self.responses = responses

        async def create_completion(
            self,
            request: CompletionRequest,
        ) -> ChatCompletionResponse:
            return self.responses.pop(0)

    swarm = Swarm(agents=[agent], client=ScriptedClient([...]))
    ```
    """

    async def create_completion(self, request: CompletionRequest) -> ChatCompletionResponse:
        """Send a completion request and return the parsed response.

        Args:
            request: Request to send.

        Returns:
            Parsed completion response.

        Raises:
            SwarmError: If the request fails or the response is malformed.
        """
        ...


class LiteCompletionClient(CompletionClient):
    """Completion client backed by `litellm`.

    Talks to an OpenAI-compatible endpoint with bearer authentication and
    separate connect and total timeouts. Streamed requests are reassembled
    into a full response before returning.
    """

    def __init__(self, api_key: str, config: SwarmConfig) -> None:
        """Initialize the client.

        Args:
            api_key: Provider API key.
            config: Validated Swarm configuration.
        """
        self.api_key = api_key
        self.config = config

    async def create_completion(self, request: CompletionRequest) -> ChatCompletionResponse:
        payload = request.to_payload()
        timeout = httpx.Timeout(
            self.config.request_timeout,
            connect=self.config.connect_timeout,
        )

        try:
            response = await acompletion(
                **payload,
                api_base=self.config.api_base,
                api_key=self.api_key,
                timeout=timeout,
                max_retries=0,
                custom_llm_provider="openai",
            )

            if isinstance(response, CustomStreamWrapper):
                chunks = [chunk async for chunk in response]
                response = stream_chunk_builder(chunks, messages=payload["messages"])
        except litellm_exceptions.Timeout as e:
            raise RequestTimeoutError(f"Request timed out: {e}", e) from e
        except litellm_exceptions.RateLimitError as e:
            raise RateLimitError(f"Rate limit exceeded: {e}", e, status_code=e.status_code) from e
        except litellm_exceptions.AuthenticationError as e:
            raise AuthenticationError(
                f"Authentication failed: {e}",
                e,
                status_code=e.status_code,
            ) from e
        except litellm_exceptions.APIConnectionError as e:
            raise NetworkError(f"Failed to reach the API: {e}", e) from e
        except litellm_exceptions.APIResponseValidationError as e:
            raise DeserializationError(f"Invalid response from the API: {e}", e) from e
        except _API_STATUS_ERRORS as e:
            raise APIError(str(e), e, status_code=getattr(e, "status_code", None)) from e

        if response is None:
            raise APIError("No choices returned from the model")

        try:
            return ChatCompletionResponse.model_validate(response.model_dump())
        except ValidationError as e:
            raise DeserializationError(f"Unexpected response schema: {e}", e) from e


def build_completion_request(
    agent: Agent,
    history: Sequence[Message],
    context_variables: ContextVariables,
    model_override: str | None = None,
    stream: bool = False,
) -> CompletionRequest:
    """Build the request for one model round-trip.

    The agent's instructions are resolved against a copy of the context,
    stripped of any step program and prepended as a system message to a copy
    of the history.

    Args:
        agent: Active agent.
        history: Conversation history so far.
        context_variables: Running context.
        model_override: Optional model replacing the agent's model.
        stream: Whether to request a streamed response.

    Returns:
        The completion request.

    Raises:
        InvalidInputError: If the history is empty.
    """
    if not history:
        raise InvalidInputError("Message history cannot be empty")

    instructions = strip_step_program(unwrap_instructions(agent.instructions, context_variables))
    functions = [function_to_json(function) for function in agent.functions]

    return CompletionRequest(
        model=model_override or agent.model,
        messages=[Message(role="system", content=instructions), *history],
        functions=functions or None,
        function_call=agent.function_call,
        stream=stream,
    )


def log_request(request: CompletionRequest, agent: Agent, debug: bool) -> None:
    """Log the outgoing messages when debugging is enabled."""
    if debug:
        messages: list[dict[str, Any]] = dump_messages(request.messages)
        log_verbose(
            f"Getting chat completion for agent [{agent.name}] with messages: {messages}",
            level="DEBUG",
        )
