# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import inspect
from typing import Any, Literal

from griffe import Docstring, DocstringSectionKind

from stepswarm.types.swarm import AgentFunction
from stepswarm.utils.logging import disable_logging, log_verbose

EMPTY_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "required": [],
}
"""Parameter schema used when a function declares none."""


def function_to_json(function: AgentFunction) -> dict[str, Any]:
    """Convert an agent function to a function declaration for the provider.

    The description comes from `AgentFunction.description` or, failing that,
    from the text section of the callable's docstring.

    Args:
        function: The agent function to convert.

    Returns:
        Dict with the function's name, description and parameter schema.

    Example:
        ```python
        async def get_weather(args: ContextVariables) -> str:
            \"\"\"Get the current weather for a city.\"\"\"
            return "Sunny"

        schema = function_to_json(AgentFunction.create(get_weather))
        # {
        #     "name": "get_weather",
        #     "description": "Get the current weather for a city.",
        #     "parameters": {"type": "object", "properties": {}, "required": []},
        # }
        ```
    """  # noqa: D214
    description = function.description
    if description is None:
        docstring = inspect.getdoc(function.function) or ""
        description = parse_docstring_description(docstring)

    return {
        "name": function.name,
        "description": description,
        "parameters": function.parameters or EMPTY_PARAMETERS,
    }


def parse_docstring_description(docstring: str) -> str:
    """Extract the leading text section of a docstring using Griffe.

    Args:
        docstring: The docstring to parse.

    Returns:
        The description text, or an empty string if there is none.
    """
    if not docstring:
        return ""

    try:
        with disable_logging():
            style = detect_docstring_style(docstring)
            parsed_docstring = Docstring(docstring).parse(parser=style)
    except Exception as e:
        log_verbose(f"Failed to parse docstring: {e}", level="WARNING")
        return docstring.strip()

    for section in parsed_docstring:
        if section.kind == DocstringSectionKind.text:
            return str(section.value).strip()

    return ""


def detect_docstring_style(docstring: str) -> Literal["google", "sphinx", "numpy"]:
    """Detect the style of a docstring using heuristics.

    Args:
        docstring: The docstring to analyze.

    Returns:
        str: The detected style ("google", "sphinx", or "numpy").
    """
    if not docstring:
        return "google"

    if "Args:" in docstring or "Returns:" in docstring or "Raises:" in docstring:
        return "google"

    if ":param" in docstring or ":return:" in docstring or ":rtype:" in docstring:
        return "sphinx"

    if (
        "Parameters\n" in docstring
        or "Returns\n" in docstring
        or "Parameters\r\n" in docstring
        or "Returns\r\n" in docstring
    ):
        return "numpy"

    return "google"
