# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import asyncio

import pytest

from stepswarm.core.completion import CompletionClient
from stepswarm.core.swarm import Swarm
from stepswarm.types.completion import ChatCompletionResponse, Choice, CompletionRequest
from stepswarm.types.config import LoopControl, SwarmConfig
from stepswarm.types.context import ContextVariables
from stepswarm.types.exceptions import (
    AgentNotFoundError,
    APIError,
    ConfigurationError,
    InvalidInputError,
    StepProgramError,
)
from stepswarm.types.steps import Step
from stepswarm.types.swarm import (
    Agent,
    AgentFunction,
    AgentResult,
    FunctionCall,
    Message,
    ValueResult,
)
from stepswarm.utils.misc import dedent_prompt


class ScriptedClient(CompletionClient):
    """Completion client that replays scripted assistant messages."""

    def __init__(self, *messages: Message) -> None:
        self.messages = list(messages)
        self.requests: list[CompletionRequest] = []

    async def create_completion(self, request: CompletionRequest) -> ChatCompletionResponse:
        self.requests.append(request)
        message = self.messages.pop(0) if self.messages else reply("ok")
        return ChatCompletionResponse(choices=[Choice(message=message)])


class EmptyClient(CompletionClient):
    """Completion client that returns no choices."""

    async def create_completion(self, request: CompletionRequest) -> ChatCompletionResponse:
        return ChatCompletionResponse(choices=[])


def reply(content: str) -> Message:
    return Message(role="assistant", content=content)


def call(name: str, arguments: str = "{}") -> Message:
    return Message(role="assistant", function_call=FunctionCall(name=name, arguments=arguments))


def user(content: str) -> Message:
    return Message(role="user", content=content)


def stop_loop(args: ContextVariables) -> ValueResult:
    return ValueResult(value="Stopping", context_variables={"end_loop": "true"})


def make_swarm(
    client: CompletionClient,
    agents: list[Agent] | None = None,
    config: SwarmConfig | None = None,
) -> Swarm:
    return Swarm(agents=agents or [], config=config, client=client)


@pytest.fixture
def assistant() -> Agent:
    """Create an agent without a step program."""
    return Agent(
        name="assistant",
        model="gpt-4o",
        instructions="You are helpful.",
        functions=[
            AgentFunction.create(lambda args: "42", name="answer"),
            AgentFunction.create(stop_loop),
        ],
    )


@pytest.fixture
def critic() -> Agent:
    """Create a registry agent that can end loops."""
    return Agent(
        name="critic",
        model="gpt-4o",
        instructions="You review drafts.",
        functions=[AgentFunction.create(stop_loop)],
    )


# ================================================
# MARK: Default Turn
# ================================================


@pytest.mark.asyncio
async def test_run_without_program_adds_one_message(assistant: Agent) -> None:
    """Test that a plain reply grows the history by one."""
    client = ScriptedClient(reply("Hello!"))
    swarm = make_swarm(client)

    response = await swarm.run(assistant, [user("Hi")])

    assert response.messages == [user("Hi"), reply("Hello!")]
    assert response.agent is not None
    assert response.agent.name == "assistant"
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_run_without_program_adds_two_messages_on_call(assistant: Agent) -> None:
    """Test that a function call grows the history by two."""
    swarm = make_swarm(ScriptedClient(call("answer")))

    response = await swarm.run(assistant, [user("What is the answer?")])

    assert len(response.messages) == 3
    assert response.messages[2] == Message(role="function", name="answer", content="42")


@pytest.mark.asyncio
async def test_unknown_function_is_reported_to_the_model(assistant: Agent) -> None:
    """Test that calling an unknown function does not abort the run."""
    swarm = make_swarm(ScriptedClient(call("does_not_exist")))

    response = await swarm.run(assistant, [user("Hi")])

    assert response.messages[-1] == Message(
        role="assistant",
        name="does_not_exist",
        content="Error: Function does_not_exist not found.",
    )


@pytest.mark.asyncio
async def test_request_has_system_message_first(assistant: Agent) -> None:
    """Test the shape of the request sent to the model."""
    client = ScriptedClient(reply("Hello!"))
    swarm = make_swarm(client)

    await swarm.run(assistant, [user("Hi")], model_override="gpt-4o-mini")

    request = client.requests[0]
    assert request.model == "gpt-4o-mini"
    assert request.messages == [Message(role="system", content="You are helpful."), user("Hi")]
    assert request.functions is not None
    assert [function["name"] for function in request.functions] == ["answer", "stop_loop"]


@pytest.mark.asyncio
async def test_dynamic_instructions_receive_context() -> None:
    """Test that callable instructions are rendered from the context."""
    client = ScriptedClient(reply("Hi Ada"))
    agent = Agent(
        name="assistant",
        model="gpt-4o",
        instructions=lambda context: f"Help {context['user_name']}.",
    )

    response = await make_swarm(client).run(
        agent,
        [user("Hi")],
        context_variables={"user_name": "Ada"},
    )

    assert client.requests[0].messages[0].content == "Help Ada."
    assert response.context_variables == {"user_name": "Ada"}


@pytest.mark.asyncio
async def test_context_delta_is_merged() -> None:
    """Test that function context updates are merged into the context."""
    agent = Agent(
        name="assistant",
        model="gpt-4o",
        instructions="You are helpful.",
        functions=[
            AgentFunction.create(
                lambda args: ValueResult(value="saved", context_variables={"b": "2", "a": "3"}),
                name="save",
            )
        ],
    )
    swarm = make_swarm(ScriptedClient(call("save")))

    response = await swarm.run(agent, [user("Save")], context_variables={"a": "1"})

    assert response.context_variables == {"a": "3", "b": "2"}


@pytest.mark.asyncio
async def test_handoff_is_adopted(assistant: Agent, critic: Agent) -> None:
    """Test that a hand-off by name switches the active agent."""
    assistant.functions.append(
        AgentFunction.create(lambda args: AgentResult(agent="critic"), name="to_critic")
    )
    swarm = make_swarm(ScriptedClient(call("to_critic")), agents=[critic])

    response = await swarm.run(assistant, [user("Review please")])

    assert response.agent is not None
    assert response.agent.name == "critic"
    assert response.messages[-1].content == "Switched to agent critic"


@pytest.mark.asyncio
async def test_handoff_to_unknown_agent_aborts(assistant: Agent) -> None:
    """Test that a hand-off to an unregistered name aborts the run."""
    assistant.functions.append(
        AgentFunction.create(lambda args: AgentResult(agent="ghost"), name="to_ghost")
    )
    swarm = make_swarm(ScriptedClient(call("to_ghost")))

    with pytest.raises(AgentNotFoundError, match="ghost"):
        await swarm.run(assistant, [user("Hi")])


@pytest.mark.asyncio
async def test_handoff_to_unregistered_agent_object_aborts(assistant: Agent) -> None:
    """Test that a hand-off to an agent missing from the registry aborts the run."""
    stranger = Agent(name="stranger", model="gpt-4o", instructions="Take over.")
    assistant.functions.append(AgentFunction.create(lambda args: stranger, name="to_stranger"))
    client = ScriptedClient(call("to_stranger"), reply("never sent"))
    swarm = make_swarm(client)

    with pytest.raises(AgentNotFoundError, match="stranger"):
        await swarm.run(assistant, [user("Hi")])

    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_no_choices_is_an_api_error(assistant: Agent) -> None:
    """Test that a completion without choices aborts the run."""
    swarm = make_swarm(EmptyClient())

    with pytest.raises(APIError, match="No choices"):
        await swarm.run(assistant, [user("Hi")])


# ================================================
# MARK: Validation
# ================================================


@pytest.mark.asyncio
async def test_empty_instructions_fail_before_network() -> None:
    """Test that validation errors happen before any model call."""
    client = ScriptedClient()
    agent = Agent(name="assistant", model="gpt-4o", instructions="")

    with pytest.raises(InvalidInputError):
        await make_swarm(client).run(agent, [user("Hi")])

    assert client.requests == []


@pytest.mark.asyncio
async def test_max_turns_cannot_exceed_ceiling(assistant: Agent) -> None:
    """Test that max_turns is bounded by the configuration."""
    client = ScriptedClient()
    swarm = make_swarm(client, config=SwarmConfig(max_loop_iterations=5))

    with pytest.raises(InvalidInputError, match="exceeds configured max_loop_iterations"):
        await swarm.run(assistant, [user("Hi")], max_turns=6)

    assert client.requests == []


@pytest.mark.asyncio
async def test_malformed_program_fails_before_network() -> None:
    """Test that a malformed step program aborts the run."""
    client = ScriptedClient()
    agent = Agent(name="writer", model="gpt-4o", instructions="Write.\n<steps><step></steps>")

    with pytest.raises(StepProgramError):
        await make_swarm(client).run(agent, [user("Hi")])

    assert client.requests == []


def test_registry_agents_are_validated() -> None:
    """Test that registry agents must use an allowed model."""
    agent = Agent(name="local", model="llama3", instructions="Hi")

    with pytest.raises(InvalidInputError, match="Invalid model prefix"):
        make_swarm(ScriptedClient(), agents=[agent])


def test_missing_api_key_for_default_client(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that building the default client requires an API key."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="API key"):
        Swarm()


def test_api_key_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that the API key is read from the environment."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    swarm = Swarm()

    assert swarm.config == SwarmConfig()


def test_get_agent_by_name_returns_copy(critic: Agent) -> None:
    """Test that the registry hands out copies."""
    swarm = make_swarm(ScriptedClient(), agents=[critic])

    found = swarm.get_agent_by_name("critic")
    found.name = "renamed"

    assert swarm.get_agent_by_name("critic").name == "critic"

    with pytest.raises(AgentNotFoundError):
        swarm.get_agent_by_name("ghost")


# ================================================
# MARK: Step Programs
# ================================================


@pytest.mark.asyncio
async def test_single_run_once_step() -> None:
    """Test that a run_once step adds its prompt and one reply."""
    client = ScriptedClient(reply("Draft"))
    agent = Agent(
        name="writer",
        model="gpt-4o",
        instructions=dedent_prompt("""
            You write drafts.
            <steps>
                <step number="1" action="run_once">
                    <prompt>Write a draft.</prompt>
                </step>
            </steps>
        """),
    )

    response = await make_swarm(client).run(agent, [user("Start")])

    assert response.messages == [user("Start"), user("Write a draft."), reply("Draft")]
    assert client.requests[0].messages[0] == Message(role="system", content="You write drafts.")


@pytest.mark.asyncio
async def test_loop_stops_at_iteration_cap(assistant: Agent) -> None:
    """Test that a loop runs exactly max_iterations times without a sentinel."""
    client = ScriptedClient()
    agent = assistant.model_copy(
        update={
            "instructions": (
                'Loop.<steps><step number="1" action="loop">'
                "<prompt>Again</prompt></step></steps>"
            )
        }
    )
    config = SwarmConfig(max_loop_iterations=100, loop_control=LoopControl(max_iterations=3))

    response = await make_swarm(client, config=config).run(agent, [user("Go")])

    assert len(client.requests) == 3
    assert len(response.messages) == 1 + 3 * 2


@pytest.mark.asyncio
async def test_loop_stops_on_sentinel(assistant: Agent) -> None:
    """Test that setting end_loop to "true" ends the loop."""
    client = ScriptedClient(reply("first"), call("stop_loop"), reply("unused"))
    agent = assistant.model_copy(
        update={
            "instructions": (
                '<steps><step number="1" action="loop">'
                "<prompt>Continue</prompt></step></steps>"
            )
        }
    )

    response = await make_swarm(client).run(agent, [user("Go")])

    assert len(client.requests) == 2
    assert response.context_variables["end_loop"] == "true"
    assert response.messages[-1].content == "Stopping"


@pytest.mark.asyncio
async def test_loop_stops_at_max_turns(assistant: Agent) -> None:
    """Test that a loop stops once the history reaches max_turns."""
    client = ScriptedClient()
    agent = assistant.model_copy(
        update={
            "instructions": (
                '<steps><step number="1" action="loop">'
                "<prompt>Continue</prompt></step></steps>"
            )
        }
    )

    response = await make_swarm(client).run(agent, [user("Go")], max_turns=4)

    assert len(client.requests) == 2
    assert len(response.messages) == 5


@pytest.mark.asyncio
async def test_loop_waits_between_iterations(
    assistant: Agent,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that the iteration delay is applied between loop iterations."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    agent = assistant.model_copy(
        update={
            "instructions": (
                '<steps><step number="1" action="loop">'
                "<prompt>Continue</prompt></step></steps>"
            )
        }
    )
    config = SwarmConfig(loop_control=LoopControl(max_iterations=3, iteration_delay=0.5))

    await make_swarm(ScriptedClient(), config=config).run(agent, [user("Go")])

    assert delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_step_agent_override(assistant: Agent, critic: Agent) -> None:
    """Test that a step can run with a registry agent."""
    client = ScriptedClient(reply("Draft"), reply("Looks good"))
    agent = assistant.model_copy(
        update={
            "instructions": dedent_prompt("""
                You write drafts.
                <steps>
                    <step number="1" action="run_once"><prompt>Write.</prompt></step>
                    <step number="2" action="run_once" agent="critic">
                        <prompt>Review.</prompt>
                    </step>
                </steps>
            """)
        }
    )

    response = await make_swarm(client, agents=[critic]).run(agent, [user("Go")])

    assert client.requests[1].messages[0].content == "You review drafts."
    assert response.agent is not None
    assert response.agent.name == "critic"
    assert len(response.messages) == 5


@pytest.mark.asyncio
async def test_step_with_unknown_agent_aborts(assistant: Agent) -> None:
    """Test that a step naming an unknown agent aborts before its turn."""
    client = ScriptedClient()
    agent = assistant.model_copy(
        update={
            "instructions": (
                '<steps><step number="1" action="run_once" agent="ghost">'
                "<prompt>Hi</prompt></step></steps>"
            )
        }
    )

    with pytest.raises(AgentNotFoundError):
        await make_swarm(client).run(agent, [user("Go")])

    assert client.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("step", "match"),
    [
        (Step(number=0, action="run_once", prompt="Hi"), "greater than 0"),
        (Step(number=1, action="run_once", prompt="  "), "prompt cannot be empty"),
        (Step(number=1, action="dance", prompt="Hi"), "Unknown action: dance"),
    ],
)
async def test_invalid_step_is_rejected(assistant: Agent, step: Step, match: str) -> None:
    """Test that invalid steps fail before any model call."""
    client = ScriptedClient()

    with pytest.raises(InvalidInputError, match=match):
        await make_swarm(client).execute_step(
            step=step,
            agent=assistant,
            history=[user("Go")],
            context_variables={},
            max_turns=10,
        )

    assert client.requests == []


@pytest.mark.asyncio
async def test_handed_off_agent_program_is_not_sent(assistant: Agent) -> None:
    """Test that step markup of a hand-off target never reaches the model."""
    planner = Agent(
        name="planner",
        model="gpt-4o",
        instructions=(
            'Plan things.<steps><step number="1" action="run_once">'
            "<prompt>Plan</prompt></step></steps>"
        ),
    )
    assistant.functions.append(
        AgentFunction.create(lambda args: AgentResult(agent="planner"), name="to_planner")
    )
    agent = assistant.model_copy(
        update={
            "instructions": (
                '<steps><step number="1" action="loop">'
                "<prompt>Continue</prompt></step></steps>"
            )
        }
    )
    client = ScriptedClient(call("to_planner"), reply("Planned"))
    config = SwarmConfig(loop_control=LoopControl(max_iterations=2))

    response = await make_swarm(client, agents=[planner], config=config).run(agent, [user("Go")])

    assert client.requests[1].messages[0].content == "Plan things."
    assert response.agent is not None
    assert response.agent.name == "planner"
