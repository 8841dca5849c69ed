# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import asyncio
import os
from collections.abc import AsyncGenerator, Mapping, Sequence
from types import MappingProxyType

from stepswarm.core.completion import (
    CompletionClient,
    LiteCompletionClient,
    build_completion_request,
    log_request,
)
from stepswarm.core.function_dispatcher import FunctionDispatcher
from stepswarm.core.streamer import Streamer
from stepswarm.types.completion import ChatCompletionResponse
from stepswarm.types.config import SwarmConfig
from stepswarm.types.context import ContextVariables, should_end_loop
from stepswarm.types.exceptions import AgentNotFoundError, APIError, InvalidInputError
from stepswarm.types.steps import Step, StepAction, Steps
from stepswarm.types.swarm import Agent, Message, Response
from stepswarm.utils.logging import log_verbose
from stepswarm.utils.misc import unwrap_instructions
from stepswarm.utils.steps import extract_step_program, parse_steps
from stepswarm.utils.validation import (
    validate_agent,
    validate_api_key,
    validate_api_request,
    validate_config,
)

API_KEY_ENV_VAR = "OPENAI_API_KEY"
"""Environment variable read when no API key is passed to the Swarm."""


class Swarm:
    """Orchestrates multi-turn conversations between agents and a language model.

    A run alternates model turns with host function dispatch. Agents can hand
    the conversation off to each other by returning an agent (or the name of
    a registered one) from a function, and can embed a step program in their
    instructions to script the conversation as a sequence of `run_once` and
    `loop` steps.

    Example:
        ```python
        def end_review(args: ContextVariables) -> ValueResult:
            return ValueResult(value="Done", context_variables={"end_loop": "true"})

        critic = Agent(
            name="critic",
            model="gpt-4o",
            instructions="Review the draft. Call end_review when it is good.",
            functions=[AgentFunction.create(end_review)],
        )

        writer = Agent(
            name="writer",
            model="gpt-4o",
            instructions=dedent_prompt('''
                You are a technical writer.
                <steps>
                    <step number="1" action="run_once">
                        <prompt>Write a short intro to asyncio.</prompt>
                    </step>
                    <step number="2" action="loop" agent="critic">
                        <prompt>Review the latest draft.</prompt>
                    </step>
                </steps>
            '''),
        )

        swarm = Swarm(agents=[writer, critic])
        response = await swarm.run(
            agent=writer,
            messages=[Message(role="user", content="Let's start.")],
        )
        ```

    Notes:
        The agent registry is a read-only snapshot taken at construction, and
        all per-run state lives in the run itself, so one Swarm can serve
        concurrent runs.
    """

    def __init__(
        self,
        agents: Sequence[Agent] = (),
        config: SwarmConfig | None = None,
        api_key: str | None = None,
        client: CompletionClient | None = None,
        streamer: Streamer | None = None,
    ) -> None:
        """Initialize a new Swarm instance.

        Args:
            agents: Agents available for hand-off and step overrides by name.
            config: Static configuration. Defaults to `SwarmConfig()`.
            api_key: Provider API key. Defaults to the `OPENAI_API_KEY`
                environment variable. Only required when a default transport
                has to be built.
            client: Completion client used for turns. Defaults to
                `LiteCompletionClient`.
            streamer: Streaming transport used by `stream`. Defaults to
                `Streamer`, built on first use.

        Raises:
            ConfigurationError: If the configuration or API key is invalid.
            InvalidInputError: If a registered agent is invalid.
        """
        self.config = config or SwarmConfig()
        validate_config(self.config)

        for agent in agents:
            validate_agent(agent, self.config)

        self.agents: Mapping[str, Agent] = MappingProxyType(
            {agent.name: agent.model_copy() for agent in agents}
        )

        self._api_key = api_key
        self._dispatcher = FunctionDispatcher()
        self._client = client or LiteCompletionClient(self._resolve_api_key(), self.config)
        self._streamer = streamer

    # ================================================
    # MARK: Agent Registry
    # ================================================

    def get_agent_by_name(self, name: str) -> Agent:
        """Return a copy of a registered agent.

        Args:
            name: Name of the agent.

        Returns:
            Copy of the registered agent.

        Raises:
            AgentNotFoundError: If no agent has that name.
        """
        agent = self.agents.get(name)
        if agent is None:
            raise AgentNotFoundError(name)

        return agent.model_copy()

    def _resolve_agent(self, agent: Agent | str) -> Agent:
        # Hand-off targets must be registered, whether named or given directly
        agent_name = agent if isinstance(agent, str) else agent.name
        return self.get_agent_by_name(agent_name)

    def _resolve_api_key(self) -> str:
        api_key = self._api_key if self._api_key is not None else os.getenv(API_KEY_ENV_VAR)
        return validate_api_key(api_key)

    # ================================================
    # MARK: Turn Cycle
    # ================================================

    async def get_chat_completion(
        self,
        agent: Agent,
        history: Sequence[Message],
        context_variables: ContextVariables,
        model_override: str | None = None,
        stream: bool = False,
        debug: bool = False,
    ) -> ChatCompletionResponse:
        """Request one completion for the agent.

        Args:
            agent: Active agent.
            history: Conversation history so far.
            context_variables: Running context used to resolve instructions.
            model_override: Optional model replacing the agent's model.
            stream: Whether to request a streamed response.
            debug: Whether to log the request.

        Returns:
            The provider's response.
        """
        request = build_completion_request(
            agent=agent,
            history=history,
            context_variables=context_variables,
            model_override=model_override,
            stream=stream,
        )
        log_request(request, agent, debug)

        return await self._client.create_completion(request)

    async def single_execution(
        self,
        agent: Agent,
        history: Sequence[Message],
        context_variables: ContextVariables,
        model_override: str | None = None,
        stream: bool = False,
        debug: bool = False,
    ) -> Response:
        """Run one turn: a model round-trip plus at most one function dispatch.

        Args:
            agent: Active agent.
            history: Conversation history so far.
            context_variables: Running context.
            model_override: Optional model replacing the agent's model.
            stream: Whether to request a streamed response.
            debug: Whether to log request and dispatch details.

        Returns:
            Response with the one or two new messages, the agent active after
            the turn and the updated context.

        Raises:
            APIError: If the model returns no choices.
            AgentNotFoundError: If a function hands off to an unknown agent.
            SwarmError: If the round-trip or the dispatch fails.
        """
        completion = await self.get_chat_completion(
            agent=agent,
            history=history,
            context_variables=context_variables,
            model_override=model_override,
            stream=stream,
            debug=debug,
        )

        if not completion.choices:
            raise APIError("No choices returned from the model")

        message = completion.choices[0].message
        new_messages = [message]
        context = dict(context_variables)
        active_agent = agent

        if message.function_call is not None:
            outcome = await self._dispatcher.handle_function_call(
                function_call=message.function_call,
                functions=agent.functions,
                context_variables=context,
                debug=debug,
            )

            new_messages.append(outcome.message)
            context.update(outcome.context_variables)

            if outcome.agent is not None:
                active_agent = self._resolve_agent(outcome.agent)
                log_verbose(
                    f"Switching from agent [{agent.name}] to [{active_agent.name}]",
                    level="INFO",
                )

        return Response(
            messages=new_messages,
            agent=active_agent,
            context_variables=context,
        )

    # ================================================
    # MARK: Step Execution
    # ================================================

    async def execute_step(  # noqa: PLR0913
        self,
        step: Step,
        agent: Agent,
        history: Sequence[Message],
        context_variables: ContextVariables,
        max_turns: int,
        model_override: str | None = None,
        stream: bool = False,
        debug: bool = False,
    ) -> Response:
        """Execute a single step of a step program.

        A `run_once` step appends its prompt and runs one turn. A `loop` step
        repeats that until the context sets `end_loop` to "true", the
        configured iteration cap is reached, or the history reaches
        `max_turns`. Hand-offs are adopted after every turn.

        Args:
            step: Step to execute.
            agent: Agent active before the step.
            history: Conversation history so far.
            context_variables: Running context.
            max_turns: History length at which a loop stops.
            model_override: Optional model replacing the agent's model.
            stream: Whether to request streamed responses.
            debug: Whether to log request and dispatch details.

        Returns:
            Response with the full history, the active agent and the context
            after the step.

        Raises:
            InvalidInputError: If the step is invalid.
            AgentNotFoundError: If the step names an unknown agent.
        """
        self._validate_step(step)

        active_agent = agent
        if step.agent is not None:
            active_agent = self.get_agent_by_name(step.agent)
            log_verbose(f"Step {step.number} uses agent [{active_agent.name}]", level="INFO")

        log_verbose(f"Executing step {step.number} ({step.action})", level="INFO")

        messages = list(history)
        context = dict(context_variables)
        loop_control = self.config.loop_control
        iteration = 0

        while True:
            iteration += 1
            messages.append(Message(role="user", content=step.prompt))

            turn = await self.single_execution(
                agent=active_agent,
                history=messages,
                context_variables=context,
                model_override=model_override,
                stream=stream,
                debug=debug,
            )

            messages.extend(turn.messages)
            context = turn.context_variables
            active_agent = turn.agent or active_agent

            if step.action == StepAction.RUN_ONCE:
                break

            if should_end_loop(context):
                log_verbose(f"Loop in step {step.number} ended by context", level="INFO")
                break

            if iteration >= loop_control.max_iterations:
                log_verbose(
                    f"Loop in step {step.number} reached {loop_control.max_iterations} iterations",
                    level="INFO",
                )
                break

            if len(messages) >= max_turns:
                log_verbose(f"Loop in step {step.number} reached max turns", level="INFO")
                break

            if loop_control.iteration_delay > 0:
                await asyncio.sleep(loop_control.iteration_delay)

        return Response(
            messages=messages,
            agent=active_agent,
            context_variables=context,
        )

    def _validate_step(self, step: Step) -> None:
        if step.number <= 0:
            raise InvalidInputError("Step number must be greater than 0")

        if not step.prompt.strip():
            raise InvalidInputError("Step prompt cannot be empty")

        if step.action not in (StepAction.RUN_ONCE, StepAction.LOOP):
            raise InvalidInputError(f"Unknown action: {step.action}")

    # ================================================
    # MARK: Public Interface
    # ================================================

    async def run(  # noqa: PLR0913
        self,
        agent: Agent,
        messages: Sequence[Message],
        context_variables: ContextVariables | None = None,
        model_override: str | None = None,
        stream: bool = False,
        debug: bool = False,
        max_turns: int | None = None,
    ) -> Response:
        """Run a conversation with an agent.

        If the agent's instructions embed a step program, every step runs in
        declaration order. Otherwise exactly one turn runs, which adds one
        assistant message to the history, or two when the model calls a
        function.

        Args:
            agent: Agent starting the conversation.
            messages: Initial conversation history.
            context_variables: Initial context. Defaults to an empty context.
            model_override: Optional model replacing the agents' models.
            stream: Whether to request streamed responses.
            debug: Whether to log request and dispatch details.
            max_turns: History length at which loop steps stop. Defaults to
                `config.max_loop_iterations` and cannot exceed it.

        Returns:
            Response with the full history, the final agent and the final
            context.

        Raises:
            InvalidInputError: If the request or a step is invalid.
            StepProgramError: If the step program is malformed.
            AgentNotFoundError: If a hand-off or step names an unknown agent.
            SwarmError: If a turn fails.

        Example:
            ```python
            response = await swarm.run(
                agent=agent,
                messages=[Message(role="user", content="Hello!")],
                context_variables={"user_name": "Alice"},
            )
            print(response.messages[-1].content)
            ```
        """
        if max_turns is None:
            max_turns = self.config.max_loop_iterations

        validate_api_request(agent, messages, model_override, max_turns)

        if max_turns > self.config.max_loop_iterations:
            raise InvalidInputError(
                f"max_turns ({max_turns}) exceeds configured "
                f"max_loop_iterations ({self.config.max_loop_iterations})"
            )

        context = dict(context_variables or {})
        instructions = unwrap_instructions(agent.instructions, context)
        stripped_instructions, program = extract_step_program(instructions)
        steps = parse_steps(program) if program is not None else Steps()

        active_agent = agent.model_copy(update={"instructions": stripped_instructions})
        history = list(messages)

        if steps.is_empty():
            log_verbose("No steps defined, executing a single turn", level="INFO")
            turn = await self.single_execution(
                agent=active_agent,
                history=history,
                context_variables=context,
                model_override=model_override,
                stream=stream,
                debug=debug,
            )

            return Response(
                messages=[*history, *turn.messages],
                agent=turn.agent,
                context_variables=turn.context_variables,
            )

        for step in steps.steps:
            result = await self.execute_step(
                step=step,
                agent=active_agent,
                history=history,
                context_variables=context,
                max_turns=max_turns,
                model_override=model_override,
                stream=stream,
                debug=debug,
            )

            history = result.messages
            context = result.context_variables
            active_agent = result.agent or active_agent

        return Response(
            messages=history,
            agent=active_agent,
            context_variables=context,
        )

    async def stream(
        self,
        agent: Agent,
        messages: Sequence[Message],
        context_variables: ContextVariables | None = None,
        model_override: str | None = None,
        debug: bool = False,
    ) -> AsyncGenerator[Message, None]:
        """Stream a single model turn for an agent.

        Function calls are not dispatched and step programs are not
        executed; the step markup is stripped from the instructions.

        Args:
            agent: Agent to stream a turn for.
            messages: Conversation history.
            context_variables: Context used to resolve instructions.
            model_override: Optional model replacing the agent's model.
            debug: Whether to log the request.

        Yields:
            One message per streamed fragment.

        Raises:
            InvalidInputError: If the request is invalid.
            ConfigurationError: If the default streamer needs an API key
                and none is valid.
            SwarmError: If streaming fails.

        Example:
            ```python
            async for chunk in swarm.stream(agent, messages):
                print(chunk.content or "", end="", flush=True)
            ```
        """
        validate_api_request(agent, messages, model_override, self.config.max_loop_iterations)

        if self._streamer is None:
            self._streamer = Streamer(self._resolve_api_key(), self.config)

        async for message in self._streamer.stream_chat(
            agent=agent,
            history=messages,
            context_variables=dict(context_variables or {}),
            model_override=model_override,
            debug=debug,
        ):
            yield message
