# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StepAction(str, Enum):
    """Action performed by a step of a step program."""

    RUN_ONCE = "run_once"
    """Send the prompt and run exactly one turn cycle."""

    LOOP = "loop"
    """Repeat the prompt and turn cycle until a termination condition holds."""


class Step(BaseModel):
    """Single step of an embedded step program.

    The parser accepts any number, action and prompt; they are checked when
    the step is executed, so a program with an invalid step still parses.

    Examples:
        Step declared in markup:
            ```xml
            <step number="2" action="loop" agent="critic">
                <prompt>Review the draft and set end_loop when satisfied.</prompt>
            </step>
            ```
    """

    number: int
    """1-based sequence number."""

    action: str
    """Action tag, one of `StepAction` values."""

    agent: str | None = None
    """Optional name of the registry agent that runs this step."""

    prompt: str
    """Prompt sent as a user message."""

    model_config = ConfigDict(
        frozen=True,
        use_attribute_docstrings=True,
    )


class Steps(BaseModel):
    """Ordered steps parsed from one step program."""

    steps: tuple[Step, ...] = ()
    """Steps in declaration order; empty when no program is present."""

    model_config = ConfigDict(
        frozen=True,
        use_attribute_docstrings=True,
    )

    def is_empty(self) -> bool:
        """Whether the program declares no steps."""
        return not self.steps
