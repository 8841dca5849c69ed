# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import re
from xml.etree import ElementTree

from stepswarm.types.exceptions import StepProgramError
from stepswarm.types.steps import Step, Steps

STEP_PROGRAM_PATTERN = re.compile(r"<steps\b[^>]*>.*?</steps>", re.DOTALL)
"""Pattern matching one embedded step program block."""

DECLARATION_PATTERN = re.compile(r"<!\s*(DOCTYPE|ENTITY)\b", re.IGNORECASE)
"""Pattern matching document type and entity declarations."""


def extract_step_program(instructions: str) -> tuple[str, str | None]:
    """Split agent instructions into prose and an embedded step program.

    Only the first `<steps>...</steps>` block is extracted. The remaining
    text is stripped of surrounding whitespace.

    Args:
        instructions: Raw instructions text.

    Returns:
        Tuple of the instructions without the program and the raw program
        markup, or None if the instructions contain no program.

    Example:
        ```python
        text, program = extract_step_program(
            'Be brief.\\n<steps><step number="1" action="run_once">'
            "<prompt>Hi</prompt></step></steps>"
        )
        # text == "Be brief."
        # program == '<steps><step number="1" ...></steps>'
        ```
    """
    match = STEP_PROGRAM_PATTERN.search(instructions)
    if not match:
        return instructions.strip(), None

    remaining = instructions[: match.start()] + instructions[match.end() :]
    return remaining.strip(), match.group(0)


def strip_step_program(instructions: str) -> str:
    """Return the instructions without any embedded step program."""
    return extract_step_program(instructions)[0]


def parse_steps(program: str) -> Steps:
    """Parse step program markup into an ordered list of steps.

    The parser checks structure only. Step numbers, actions and prompts are
    validated when a step is executed.

    Args:
        program: Markup of a `<steps>` block.

    Returns:
        Steps in declaration order.

    Raises:
        StepProgramError: If the markup is malformed, declares a document
            type or entities, or a step is missing a required attribute or
            its prompt.

    Example:
        ```python
        steps = parse_steps(
            "<steps>"
            '<step number="1" action="run_once"><prompt>Hi</prompt></step>'
            '<step number="2" action="loop" agent="critic"><prompt>Review</prompt></step>'
            "</steps>"
        )
        # steps.steps[1].agent == "critic"
        ```
    """
    # Declarations are rejected before the markup reaches the XML parser
    if DECLARATION_PATTERN.search(program):
        raise StepProgramError("Step programs cannot declare a DOCTYPE or entities")

    try:
        root = ElementTree.fromstring(program)
    except ElementTree.ParseError as e:
        raise StepProgramError(f"Failed to parse step program: {e}", e) from e

    if root.tag != "steps":
        raise StepProgramError(f"Expected a <steps> root element, got <{root.tag}>")

    return Steps(steps=tuple(_parse_step(element) for element in root))


def _parse_step(element: ElementTree.Element) -> Step:
    if element.tag != "step":
        raise StepProgramError(f"Unexpected element <{element.tag}> in step program")

    number = element.get("number")
    if number is None:
        raise StepProgramError("Step is missing the 'number' attribute")

    try:
        step_number = int(number)
    except ValueError as e:
        raise StepProgramError(f"Invalid step number: {number!r}", e) from e

    action = element.get("action")
    if action is None:
        raise StepProgramError(f"Step {step_number} is missing the 'action' attribute")

    prompt = element.find("prompt")
    if prompt is None:
        raise StepProgramError(f"Step {step_number} is missing a <prompt> element")

    return Step(
        number=step_number,
        action=action,
        agent=element.get("agent"),
        prompt="".join(prompt.itertext()).strip(),
    )
