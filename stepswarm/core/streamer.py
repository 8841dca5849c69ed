# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import asyncio
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator, Sequence
from contextlib import asynccontextmanager

import aiohttp
import orjson
from aiohttp import ClientTimeout
from pydantic import ValidationError

from stepswarm.core.completion import build_completion_request, log_request
from stepswarm.types.completion import ChatCompletionChunk, ErrorResponse
from stepswarm.types.config import SwarmConfig
from stepswarm.types.context import ContextVariables
from stepswarm.types.exceptions import (
    APIError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    StreamError,
    SwarmError,
)
from stepswarm.types.swarm import Agent, Message
from stepswarm.utils.logging import log_verbose
from stepswarm.utils.messages import message_from_delta

DATA_PREFIX = "data:"
"""Prefix of server-sent event lines carrying a fragment."""

DONE_MARKER = "[DONE]"
"""Payload that terminates the stream."""


async def iter_stream_messages(lines: AsyncIterable[bytes | str]) -> AsyncGenerator[Message, None]:
    """Parse a server-sent event body into messages.

    Lines that do not start with `data:` are skipped and `data: [DONE]` ends
    the sequence. Every other fragment is validated on its own and yields one
    message built from its first choice, either the full `message` or the
    partial `delta`.

    Args:
        lines: Raw lines of the response body.

    Yields:
        One message per fragment that carries a choice.

    Raises:
        StreamError: If a fragment is malformed.
    """
    async for raw_line in lines:
        if isinstance(raw_line, bytes):
            raw_line = raw_line.decode("utf-8", errors="replace")

        line = raw_line.strip()
        if not line.startswith(DATA_PREFIX):
            continue

        data = line.removeprefix(DATA_PREFIX).strip()
        if data == DONE_MARKER:
            return

        try:
            chunk = ChatCompletionChunk.model_validate_json(data)
        except ValidationError as e:
            raise StreamError(f"Failed to parse stream fragment: {data!r}", e) from e

        if not chunk.choices:
            continue

        choice = chunk.choices[0]
        if choice.message is not None:
            yield choice.message
        elif choice.delta is not None:
            yield message_from_delta(choice.delta)


class Streamer:
    """Streaming transport for a single model round-trip.

    Sends one streamed completion request and yields the assistant output as
    it arrives. Unlike a run, streaming does not dispatch function calls or
    execute step programs; the caller decides what to do with the messages.

    Example:
        ```python
        streamer = Streamer(api_key="sk-...", config=SwarmConfig())
        async for chunk in streamer.stream_chat(agent, history, {}):
            print(chunk.content or "", end="", flush=True)
        ```
    """

    def __init__(
        self,
        api_key: str,
        config: SwarmConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the streamer.

        Args:
            api_key: Provider API key sent as a bearer token.
            config: Validated Swarm configuration.
            session: Optional shared HTTP session. When omitted, every
                stream opens and closes its own session.
        """
        self.api_key = api_key
        self.config = config
        self._session = session

    async def stream_chat(
        self,
        agent: Agent,
        history: Sequence[Message],
        context_variables: ContextVariables,
        model_override: str | None = None,
        debug: bool = False,
    ) -> AsyncGenerator[Message, None]:
        """Stream one completion for the agent.

        Args:
            agent: Active agent.
            history: Conversation history so far.
            context_variables: Running context used to resolve instructions.
            model_override: Optional model replacing the agent's model.
            debug: Whether to log the request.

        Yields:
            One message per fragment, in arrival order.

        Raises:
            RateLimitError: If the provider answers with status 429.
            AuthenticationError: If the provider answers with status 401 or 403.
            APIError: If the provider returns any other non-success status.
            NetworkError: If the request cannot be sent.
            RequestTimeoutError: If the request times out.
            StreamError: If the body breaks off or a fragment is malformed.
        """
        request = build_completion_request(
            agent=agent,
            history=history,
            context_variables=context_variables,
            model_override=model_override,
            stream=True,
        )
        log_request(request, agent, debug)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        timeout = ClientTimeout(
            total=self.config.request_timeout,
            connect=self.config.connect_timeout,
        )

        async with self._open_session() as session:
            try:
                async with session.post(
                    self.config.chat_completions_url,
                    data=orjson.dumps(request.to_payload()),
                    headers=headers,
                    timeout=timeout,
                ) as response:
                    if response.status >= 400:
                        raise await self._read_api_error(response)

                    async for message in iter_stream_messages(self._read_lines(response)):
                        yield message
            except asyncio.TimeoutError as e:
                raise RequestTimeoutError(f"Request timed out: {e}", e) from e
            except aiohttp.ClientError as e:
                raise NetworkError(f"Failed to reach the API: {e}", e) from e

        if debug:
            log_verbose(f"Stream finished for agent [{agent.name}]", level="DEBUG")

    @asynccontextmanager
    async def _open_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return

        async with aiohttp.ClientSession() as session:
            yield session

    async def _read_lines(self, response: aiohttp.ClientResponse) -> AsyncGenerator[bytes, None]:
        try:
            async for line in response.content:
                yield line
        except asyncio.TimeoutError:
            raise
        except aiohttp.ClientError as e:
            raise StreamError(f"Stream interrupted: {e}", e) from e

    async def _read_api_error(self, response: aiohttp.ClientResponse) -> SwarmError:
        body = await response.read()

        try:
            message = ErrorResponse.model_validate_json(body).error.message
        except ValidationError:
            message = body.decode("utf-8", errors="replace") or response.reason or "Unknown error"

        error_message = f"API request failed with status {response.status}: {message}"

        match response.status:
            case 429:
                return RateLimitError(error_message, status_code=response.status)
            case 401 | 403:
                return AuthenticationError(error_message, status_code=response.status)
            case _:
                return APIError(error_message, status_code=response.status)
