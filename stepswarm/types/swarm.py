# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from stepswarm.types.context import ContextVariables

AgentInstructions: TypeAlias = str | Callable[[ContextVariables], str]
"""Instructions for defining agent behavior.

Can be either a static string or a pure function that renders instructions
from a snapshot of the running context. Instructions may embed a step
program (see `stepswarm.utils.steps`), which is stripped before the text
reaches the model.

Examples:
    Static instructions:
        ```python
        instructions: AgentInstructions = "You are a helpful assistant."
        ```

    Dynamic instructions:
        ```python
        def generate_instructions(context: ContextVariables) -> str:
            return f"You are helping {context.get('user_name', 'the user')}."
        ```

    Instructions with a step program:
        ```python
        instructions: AgentInstructions = '''
            You are a research assistant.
            <steps>
                <step number="1" action="run_once">
                    <prompt>Summarize the topic.</prompt>
                </step>
                <step number="2" action="loop" agent="critic">
                    <prompt>Review the summary.</prompt>
                </step>
            </steps>
            '''
        ```
"""

MessageRole: TypeAlias = Literal["system", "user", "assistant", "function"]
"""Role of a message sender."""

AgentFunctionCallable: TypeAlias = Callable[[ContextVariables], Awaitable[Any] | Any]
"""Host capability invoked for a function call.

Receives the call arguments as a string map and returns (or resolves to) a
`ResultType`, a plain string, or an `Agent`.
"""


class FunctionCall(BaseModel):
    """Function call requested by the model.

    The arguments stay an opaque JSON string until dispatch time.
    """

    name: str
    """Name of the function to call."""

    arguments: str = ""
    """JSON-encoded argument object."""

    model_config = ConfigDict(use_attribute_docstrings=True)


class Message(BaseModel):
    """Message in a conversation between users, assistants, and functions.

    Examples:
        Create different message types:
            ```python
            system_msg = Message(role="system", content="You are helpful.")
            user_msg = Message(role="user", content="What's the weather?")

            call_msg = Message(
                role="assistant",
                function_call=FunctionCall(
                    name="get_weather",
                    arguments='{"city": "Paris"}',
                ),
            )

            result_msg = Message(role="function", name="get_weather", content="Sunny")
            ```
    """

    role: MessageRole
    """Role of the message sender."""

    content: str | None = None
    """Text content of the message."""

    name: str | None = None
    """Name of the function that produced or is referenced by this message."""

    function_call: FunctionCall | None = None
    """Function call requested in this message."""

    model_config = ConfigDict(
        use_attribute_docstrings=True,
        extra="ignore",
    )


class AgentFunction(BaseModel):
    """Host capability that an agent can ask the engine to invoke.

    Examples:
        Wrap an async function:
            ```python
            async def lookup_order(args: ContextVariables) -> ValueResult:
                order = await orders.get(args["order_id"])
                return ValueResult(value=order.status)

            function = AgentFunction.create(lookup_order)
            ```

        Request the running context:
            ```python
            async def whoami(args: ContextVariables) -> str:
                context = orjson.loads(args["context_variables"])
                return context.get("user_name", "unknown")

            function = AgentFunction.create(whoami, accepts_context_variables=True)
            ```
    """

    name: str
    """Name under which the model calls the function."""

    function: AgentFunctionCallable
    """Capability invoked with the call arguments."""

    accepts_context_variables: bool = False
    """Whether the serialized running context is injected into the arguments."""

    description: str | None = None
    """Description sent to the model; defaults to the callable's docstring."""

    parameters: dict[str, Any] | None = None
    """JSON schema of the arguments; defaults to an empty object schema."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_attribute_docstrings=True,
    )

    @classmethod
    def create(
        cls,
        function: AgentFunctionCallable,
        name: str | None = None,
        accepts_context_variables: bool = False,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> "AgentFunction":
        """Create an agent function from a callable.

        Args:
            function: Capability to invoke.
            name: Function name; defaults to the callable's `__name__`.
            accepts_context_variables: Whether to inject the running context.
            description: Optional description override.
            parameters: Optional JSON schema of the arguments.

        Returns:
            New AgentFunction instance.
        """
        return cls(
            name=name or function.__name__,
            function=function,
            accepts_context_variables=accepts_context_variables,
            description=description,
            parameters=parameters,
        )


class Agent(BaseModel):
    """AI agent that participates in conversations and calls functions.

    Agents are never mutated during a run. Hand-offs and step program
    stripping work on copies.

    Examples:
        Create an agent:
            ```python
            agent = Agent(
                name="assistant",
                model="gpt-4o",
                instructions="You are a helpful assistant.",
                functions=[AgentFunction.create(lookup_order)],
            )
            ```
    """

    name: str
    """Unique name of the agent, used for hand-off by name."""

    model: str
    """Target model identifier."""

    instructions: AgentInstructions
    """Behavior definition (static or dynamic)."""

    functions: list[AgentFunction] = Field(default_factory=list)
    """Functions the agent can call, in registration order."""

    function_call: str | None = None
    """Optional function-call policy sent to the provider (e.g. "auto")."""

    parallel_tool_calls: bool = False
    """Whether the agent allows parallel tool calls."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_attribute_docstrings=True,
    )


class ValueResult(BaseModel):
    """Function result carrying a string value and an optional context delta."""

    kind: Literal["value"] = "value"
    """Discriminator of the result variant."""

    value: str
    """Value reported back to the model as a function message."""

    context_variables: ContextVariables | None = None
    """Optional context updates to merge into the running context."""


class AgentResult(BaseModel):
    """Function result that hands the conversation off to another agent.

    The agent can be given directly or by name, and must be registered with
    the Swarm either way.
    """

    kind: Literal["agent"] = "agent"
    """Discriminator of the result variant."""

    agent: Agent | str
    """Agent to switch to, or the registry name of one."""

    value: str | None = None
    """Optional value reported back to the model."""

    context_variables: ContextVariables | None = None
    """Optional context updates to merge into the running context."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def agent_name(self) -> str:
        """Name of the hand-off target."""
        return self.agent if isinstance(self.agent, str) else self.agent.name


class ContextResult(BaseModel):
    """Bare context delta.

    Not a valid direct function output: the dispatcher rejects it, because a
    function must report a value or hand off to an agent.
    """

    kind: Literal["context_variables"] = "context_variables"
    """Discriminator of the result variant."""

    context_variables: ContextVariables
    """Context updates."""


ResultType: TypeAlias = Annotated[
    ValueResult | AgentResult | ContextResult,
    Field(discriminator="kind"),
]
"""Closed union of function results."""

FunctionReturn: TypeAlias = ResultType | Agent | str
"""Values a host function may return.

A plain string is read as a value and an `Agent` as a hand-off. A bare
`ContextResult` belongs to the union but is rejected at dispatch, since a
function must report a value or hand off.
"""


class FunctionMessage(BaseModel):
    """Outcome of dispatching a single function call."""

    message: Message
    """Message to append to the history."""

    agent: Agent | str | None = None
    """Hand-off candidate, if the function returned one."""

    context_variables: ContextVariables = Field(default_factory=dict)
    """Context updates to merge into the running context."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Response(BaseModel):
    """Result of a run or of a single turn cycle."""

    messages: list[Message] = Field(default_factory=list)
    """Accumulated message history (or new messages for a single turn)."""

    agent: Agent | None = None
    """Final active agent."""

    context_variables: ContextVariables = Field(default_factory=dict)
    """Final context variables."""

    model_config = ConfigDict(arbitrary_types_allowed=True)
