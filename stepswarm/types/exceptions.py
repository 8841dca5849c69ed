# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.


class SwarmError(Exception):
    """Base exception class for all Swarm-related errors.

    Every error raised by the engine is a subclass, so callers can tell the
    kind of failure apart by type and decide whether it is worth retrying.

    Examples:
        Basic error handling:
            ```python
            try:
                response = await swarm.run(agent, messages)
            except SwarmError as e:
                if e.is_retriable:
                    ...  # schedule another attempt
                logger.error(f"Run failed: {e}")
            ```
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize a new SwarmError.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception, if any.
            status_code: HTTP status returned by the provider, if the error
                came from a response.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.status_code = status_code

    @property
    def is_retriable(self) -> bool:
        """Whether the same request might succeed if attempted again."""
        return False

    @property
    def is_configuration_error(self) -> bool:
        """Whether the error points at invalid settings or credentials."""
        return False


class InvalidInputError(SwarmError):
    """Exception raised when a request fails validation.

    Raised before any side effect: empty agent name or instructions, empty
    message content, invalid `max_turns`, or an invalid step at execution
    time (non-positive number, empty prompt, unknown action).
    """


class ConfigurationError(SwarmError):
    """Exception raised when static settings are invalid."""

    @property
    def is_configuration_error(self) -> bool:
        return True


class AuthenticationError(SwarmError):
    """Exception raised when the provider rejects the credentials."""

    @property
    def is_configuration_error(self) -> bool:
        return True


class NetworkError(SwarmError):
    """Exception raised when the transport fails before a response arrives."""

    @property
    def is_retriable(self) -> bool:
        return True


class RequestTimeoutError(SwarmError):
    """Exception raised when a request exceeds its connect or total timeout."""

    @property
    def is_retriable(self) -> bool:
        return True


class RateLimitError(SwarmError):
    """Exception raised when the provider rate limits the request."""

    @property
    def is_retriable(self) -> bool:
        return True


class APIError(SwarmError):
    """Exception raised on a non-success status or a provider error payload.

    Also raised when the provider returns a completion without choices.

    Examples:
        Inspect the status code:
            ```python
            try:
                response = await swarm.run(agent, messages)
            except APIError as e:
                if e.status_code == 400:
                    logger.warning(f"Bad request: {e.message}")
            ```
    """


class DeserializationError(SwarmError):
    """Exception raised when a response body does not match the expected schema."""


class FunctionError(SwarmError):
    """Exception raised when dispatching a function call fails.

    Covers malformed call arguments, exceptions raised by the function
    itself, and results that are neither a value nor an agent. The message
    includes the offending value for diagnosis.
    """


class StreamError(SwarmError):
    """Exception raised on a malformed event frame or a broken stream."""


class StepProgramError(SwarmError):
    """Exception raised when an embedded step program cannot be parsed."""


class AgentNotFoundError(SwarmError):
    """Exception raised when a hand-off names an agent missing from the registry."""

    def __init__(self, agent_name: str) -> None:
        """Initialize a new AgentNotFoundError.

        Args:
            agent_name: Name that failed to resolve.
        """
        super().__init__(f"Agent not found: {agent_name}")
        self.agent_name = agent_name
