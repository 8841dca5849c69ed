# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from stepswarm.types.context import ContextVariables
from stepswarm.types.swarm import AgentFunction
from stepswarm.utils.function import EMPTY_PARAMETERS, function_to_json


def get_weather(args: ContextVariables) -> str:
    """Get the current weather for a city.

    Args:
        args: Call arguments with a `city` key.

    Returns:
        Weather summary.
    """
    return f"Sunny in {args['city']}"


def test_function_to_json_uses_docstring() -> None:
    """Test that the description defaults to the docstring text."""
    declaration = function_to_json(AgentFunction.create(get_weather))

    assert declaration == {
        "name": "get_weather",
        "description": "Get the current weather for a city.",
        "parameters": EMPTY_PARAMETERS,
    }


def test_function_to_json_overrides() -> None:
    """Test that explicit name, description and parameters win."""
    parameters = {
        "type": "object",
        "properties": {"city": {"type": "string"}},
        "required": ["city"],
    }

    declaration = function_to_json(
        AgentFunction.create(
            get_weather,
            name="weather",
            description="Weather lookup.",
            parameters=parameters,
        )
    )

    assert declaration == {
        "name": "weather",
        "description": "Weather lookup.",
        "parameters": parameters,
    }


def test_function_to_json_without_docstring() -> None:
    """Test that a function without a docstring gets an empty description."""
    declaration = function_to_json(AgentFunction.create(lambda args: "ok", name="noop"))

    assert declaration["description"] == ""
