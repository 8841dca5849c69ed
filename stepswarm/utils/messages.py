# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from collections.abc import Sequence
from typing import Any

from stepswarm.types.completion import Delta
from stepswarm.types.swarm import FunctionCall, Message


def dump_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Serialize messages to provider-ready dicts, omitting unset fields.

    Args:
        messages: Messages to serialize.

    Returns:
        List of message dicts.
    """
    return [message.model_dump(exclude_none=True) for message in messages]


def message_from_delta(delta: Delta) -> Message:
    """Build a message from a single streaming delta.

    The role defaults to assistant when the delta does not carry one.

    Args:
        delta: Partial update from a streaming fragment.

    Returns:
        Message with the delta's role and content.
    """
    return merge_delta(Message(role="assistant"), delta)


def merge_delta(message: Message, delta: Delta) -> Message:
    """Accumulate a streaming delta into a message.

    The streaming assembler yields one message per fragment; consumers that
    need the full assistant message fold the deltas with this function.
    Content is appended. A delta naming a function opens a new call, and
    unnamed argument fragments are appended to the open call. A role is
    adopted only if the delta carries a known role.

    Args:
        message: Message accumulated so far.
        delta: Next partial update.

    Returns:
        New message with the delta applied.

    Example:
        ```python
        message = Message(role="assistant")
        async for chunk in streamer.stream_chat(agent, history, context):
            message = merge_delta(message, Delta(content=chunk.content))
        ```
    """
    update: dict[str, Any] = {}

    if delta.role in ("system", "user", "assistant", "function"):
        update["role"] = delta.role

    if delta.content:
        update["content"] = (message.content or "") + delta.content

    if delta.function_call:
        name = delta.function_call.get("name")
        arguments = delta.function_call.get("arguments") or ""

        if name:
            update["function_call"] = FunctionCall(name=name, arguments=arguments)
        elif message.function_call is not None and arguments:
            # Argument fragments continue the call opened by an earlier delta
            update["function_call"] = message.function_call.model_copy(
                update={"arguments": message.function_call.arguments + arguments}
            )

    return message.model_copy(update=update)
