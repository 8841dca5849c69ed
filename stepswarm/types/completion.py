# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from stepswarm.types.swarm import Message


class CompletionRequest(BaseModel):
    """Body of a chat completion request.

    Examples:
        Build a request:
            ```python
            request = CompletionRequest(
                model="gpt-4o",
                messages=[
                    Message(role="system", content="You are helpful."),
                    Message(role="user", content="Hi"),
                ],
            )
            payload = request.to_payload()
            ```
    """

    model: str
    """Model identifier."""

    messages: list[Message]
    """Messages sent to the model, system message first."""

    functions: list[dict[str, Any]] | None = None
    """Function declarations available to the model."""

    function_call: str | None = None
    """Function-call policy."""

    stream: bool = False
    """Whether the provider should stream the response."""

    model_config = ConfigDict(use_attribute_docstrings=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialize the request to the provider's JSON body.

        Optional keys are omitted when unset.

        Returns:
            JSON-compatible request body.
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message.model_dump(exclude_none=True) for message in self.messages],
        }

        if self.functions:
            payload["functions"] = self.functions

        if self.function_call:
            payload["function_call"] = self.function_call

        if self.stream:
            payload["stream"] = True

        return payload


class Usage(BaseModel):
    """Token usage reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Choice(BaseModel):
    """Choice of a non-streaming completion."""

    index: int = 0
    message: Message
    finish_reason: str | None = None


class ChatCompletionResponse(BaseModel):
    """Non-streaming completion response."""

    id: str | None = None
    object: str | None = None
    created: int | None = None
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None


class Delta(BaseModel):
    """Partial message update carried by a streaming fragment."""

    role: str | None = None
    """Role of the message being updated."""

    content: str | None = None
    """Content chunk."""

    function_call: dict[str, Any] | None = None
    """Partial function call, if any."""


class ChunkChoice(BaseModel):
    """Choice of a streaming fragment.

    Carries either a full `message` or a partial `delta`.
    """

    index: int = 0
    message: Message | None = None
    delta: Delta | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """Single fragment of a streaming completion."""

    id: str | None = None
    object: str | None = None
    created: int | None = None
    choices: list[ChunkChoice] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Error details reported by the provider."""

    message: str
    type: str | None = None
    code: str | int | None = None


class ErrorResponse(BaseModel):
    """Error payload returned with a non-success status."""

    error: ErrorDetail
