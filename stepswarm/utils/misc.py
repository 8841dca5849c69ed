# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from textwrap import dedent

from stepswarm.types.context import ContextVariables
from stepswarm.types.swarm import AgentInstructions


def unwrap_instructions(
    instructions: AgentInstructions,
    context_variables: ContextVariables | None = None,
) -> str:
    """Resolve agent instructions to text.

    Callable instructions receive a copy of the context, so they cannot
    change the running context of the conversation.

    Args:
        instructions: Static text or a function rendering text from context.
        context_variables: Running context of the conversation.

    Returns:
        The instructions text.

    Example:
        ```python
        def get_instructions(context_variables: ContextVariables) -> str:
            user = context_variables.get("user_name", "user")
            return f"Help {user} with their task."

        instructions = unwrap_instructions(
            get_instructions,
            context_variables={"user_name": "Alice"},
        )
        # "Help Alice with their task."
        ```
    """
    if callable(instructions):
        return instructions(dict(context_variables or {}))

    return instructions


def dedent_prompt(prompt: str) -> str:
    """Remove common leading whitespace from every line in a prompt.

    Useful for keeping step programs readable in source code.

    Example:
    ```python
    instructions = dedent_prompt('''
        You are a helpful assistant.
        <steps>
            <step number="1" action="run_once"><prompt>Hi</prompt></step>
        </steps>
    ''')
    ```

    Args:
        prompt: The prompt string to clean

    Returns:
        The prompt with common leading whitespace removed
    """
    return dedent(prompt).strip()
