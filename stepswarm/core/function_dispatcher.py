# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import inspect
from collections.abc import Sequence

import orjson
from pydantic import TypeAdapter, ValidationError

from stepswarm.types.context import CONTEXT_VARIABLES_KEY, ContextVariables
from stepswarm.types.exceptions import FunctionError, InvalidInputError, SwarmError
from stepswarm.types.swarm import (
    Agent,
    AgentFunction,
    AgentResult,
    ContextResult,
    FunctionCall,
    FunctionMessage,
    FunctionReturn,
    Message,
    ValueResult,
)
from stepswarm.utils.logging import log_verbose

_ARGUMENTS_ADAPTER = TypeAdapter(dict[str, str])


class FunctionDispatcher:
    """Resolves model-declared function calls against an agent's functions.

    The dispatcher invokes exactly one host function per call and never
    retries. A call to an unknown function is recovered as a diagnostic
    assistant message so the run can continue. Malformed arguments, failing
    functions and results that are neither a value nor an agent raise
    `FunctionError`, since they point at a bug in host code.

    Example:
        ```python
        async def get_weather(args: ContextVariables) -> str:
            return f"Sunny in {args['city']}"

        dispatcher = FunctionDispatcher()
        outcome = await dispatcher.handle_function_call(
            function_call=FunctionCall(name="get_weather", arguments='{"city": "Paris"}'),
            functions=[AgentFunction.create(get_weather)],
            context_variables={},
        )
        # outcome.message == Message(role="function", name="get_weather", content="Sunny in Paris")
        ```
    """

    async def handle_function_call(
        self,
        function_call: FunctionCall,
        functions: Sequence[AgentFunction],
        context_variables: ContextVariables,
        debug: bool = False,
    ) -> FunctionMessage:
        """Dispatch a single function call.

        Args:
            function_call: Call requested by the model.
            functions: Functions of the active agent, in registration order.
            context_variables: Running context, injected into the arguments
                of functions that accept it.
            debug: Whether to log dispatch details.

        Returns:
            FunctionMessage with the message to append, the context delta and
            an optional hand-off candidate.

        Raises:
            InvalidInputError: If the call has no name.
            FunctionError: If the arguments are malformed, the function fails,
                or it returns an unsupported result.
        """
        function_name = function_call.name
        if not function_name.strip():
            raise InvalidInputError("Function call name cannot be empty.")

        # Later registrations shadow earlier ones
        function_map = {function.name: function for function in functions}
        function = function_map.get(function_name)

        if function is None:
            if debug:
                log_verbose(f"Function {function_name} not found.", level="DEBUG")

            return FunctionMessage(
                message=Message(
                    role="assistant",
                    name=function_name,
                    content=f"Error: Function {function_name} not found.",
                )
            )

        args = self._parse_arguments(function_call)
        if debug:
            log_verbose(
                f"Processing function call: {function_name} with arguments {args}",
                level="DEBUG",
            )

        if function.accepts_context_variables:
            args[CONTEXT_VARIABLES_KEY] = orjson.dumps(context_variables).decode()

        try:
            raw_result: FunctionReturn = function.function(args)
            if inspect.isawaitable(raw_result):
                raw_result = await raw_result
        except SwarmError:
            raise
        except Exception as e:
            raise FunctionError(f"Function {function_name} failed: {e}", e) from e

        match self.handle_function_result(raw_result, debug=debug):
            case AgentResult() as agent_result:
                content = agent_result.value or f"Switched to agent {agent_result.agent_name}"
                return FunctionMessage(
                    message=Message(role="function", name=function_name, content=content),
                    agent=agent_result.agent,
                    context_variables=agent_result.context_variables or {},
                )

            case ValueResult() as value_result:
                return FunctionMessage(
                    message=Message(role="function", name=function_name, content=value_result.value),
                    context_variables=value_result.context_variables or {},
                )

            case _:
                raise TypeError("Expected a ValueResult or AgentResult instance.")

    def handle_function_result(
        self,
        result: FunctionReturn,
        debug: bool = False,
    ) -> ValueResult | AgentResult:
        """Normalize and validate the raw result of a function.

        A plain string is treated as a value and an `Agent` as a hand-off.
        Every other shape, including a bare context delta, is rejected.

        Args:
            result: Value returned by the function.
            debug: Whether to log rejected results.

        Returns:
            The result as a ValueResult or AgentResult.

        Raises:
            FunctionError: If the result is not a value or an agent.
        """
        match result:
            case ValueResult() | AgentResult():
                return result
            case str():
                return ValueResult(value=result)
            case Agent():
                return AgentResult(agent=result)
            case ContextResult():
                raise self._unsupported_result(result, debug)
            case _:
                # Host code can return anything at runtime
                raise self._unsupported_result(result, debug)

    def _unsupported_result(self, result: object, debug: bool) -> FunctionError:
        error_message = (
            f"Failed to cast response to string: {result!r}. "
            "Ensure agent functions return a string or ResultType."
        )

        if debug:
            log_verbose(error_message, level="DEBUG")

        return FunctionError(error_message)

    def _parse_arguments(self, function_call: FunctionCall) -> ContextVariables:
        if not function_call.arguments.strip():
            return {}

        try:
            return _ARGUMENTS_ADAPTER.validate_json(function_call.arguments, strict=True)
        except ValidationError as e:
            raise FunctionError(
                f"Invalid arguments for function {function_call.name}: "
                f"{function_call.arguments!r}. Expected a JSON object of strings.",
                e,
            ) from e
