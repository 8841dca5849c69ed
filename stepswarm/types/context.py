# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from typing import Final, TypeAlias

ContextVariables: TypeAlias = dict[str, str]
"""Run-scoped string state threaded through every turn.

Functions may read the context and return partial updates, which are merged
into the running context (new keys inserted, existing keys overwritten).
The context is never cleared during a run.
"""

CONTEXT_VARIABLES_KEY: Final = "context_variables"
"""Argument key under which the serialized context is injected into functions."""

END_LOOP_KEY: Final = "end_loop"
"""Context key that stops a `loop` step when set to `END_LOOP_SENTINEL`."""

END_LOOP_SENTINEL: Final = "true"
"""Value of `END_LOOP_KEY` that terminates a `loop` step."""


def should_end_loop(context_variables: ContextVariables) -> bool:
    """Check whether the context requests termination of the current loop.

    Args:
        context_variables: Running context of the conversation.

    Returns:
        True if the loop termination key holds the sentinel value.
    """
    return context_variables.get(END_LOOP_KEY) == END_LOOP_SENTINEL
