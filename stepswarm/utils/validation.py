# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from collections.abc import Sequence
from urllib.parse import urlsplit

from stepswarm.types.config import MAX_REQUEST_TIMEOUT, MIN_REQUEST_TIMEOUT, SwarmConfig
from stepswarm.types.exceptions import ConfigurationError, InvalidInputError
from stepswarm.types.swarm import Agent, Message

LOCAL_HOSTS = ("localhost", "127.0.0.1")
"""Hosts allowed over plain http and without a matching URL prefix."""


def validate_api_request(
    agent: Agent,
    messages: Sequence[Message],
    model_override: str | None,
    max_turns: int,
) -> None:
    """Validate a run request before any side effect.

    Args:
        agent: Agent starting the run.
        messages: Initial conversation history.
        model_override: Optional model replacing the agent's model.
        max_turns: Upper bound on the history length reached by loop steps.

    Raises:
        InvalidInputError: If any part of the request is invalid.
    """
    if max_turns <= 0:
        raise InvalidInputError("max_turns must be greater than 0")

    if model_override is not None and not model_override.strip():
        raise InvalidInputError("Model name cannot be empty")

    if not agent.name.strip():
        raise InvalidInputError("Agent name cannot be empty")

    # Callable instructions are resolved, and checked, at runtime
    if isinstance(agent.instructions, str) and not agent.instructions.strip():
        raise InvalidInputError("Agent instructions cannot be empty")

    for message in messages:
        # Content is checked only when there's no function call
        if message.function_call is not None or message.content is None:
            continue

        if not message.content.strip():
            raise InvalidInputError("Message content cannot be empty")


def validate_agent(agent: Agent, config: SwarmConfig) -> None:
    """Validate an agent against the static configuration.

    Args:
        agent: Agent to validate.
        config: Configuration providing the allowed model prefixes.

    Raises:
        InvalidInputError: If the agent is invalid.
    """
    if not agent.name.strip():
        raise InvalidInputError("Agent name cannot be empty")

    if not agent.model.strip():
        raise InvalidInputError("Agent model cannot be empty")

    if not any(agent.model.startswith(prefix) for prefix in config.valid_model_prefixes):
        raise InvalidInputError(
            f"Invalid model prefix for agent {agent.name}. "
            f"Model must start with one of: {config.valid_model_prefixes}"
        )

    if isinstance(agent.instructions, str) and not agent.instructions.strip():
        raise InvalidInputError(f"Agent {agent.name} instructions cannot be empty")


def validate_config(config: SwarmConfig) -> None:
    """Validate static settings once, at construction time.

    Args:
        config: Configuration to validate.

    Raises:
        ConfigurationError: If any setting is invalid.
    """
    if not MIN_REQUEST_TIMEOUT <= config.request_timeout <= MAX_REQUEST_TIMEOUT:
        raise ConfigurationError(
            f"request_timeout must be between {MIN_REQUEST_TIMEOUT} and "
            f"{MAX_REQUEST_TIMEOUT} seconds"
        )

    if config.connect_timeout <= 0:
        raise ConfigurationError("connect_timeout must be greater than 0")

    if config.connect_timeout > config.request_timeout:
        raise ConfigurationError("connect_timeout cannot exceed request_timeout")

    if config.max_retries <= 0:
        raise ConfigurationError("max_retries must be greater than 0")

    if config.max_loop_iterations <= 0:
        raise ConfigurationError("max_loop_iterations must be greater than 0")

    if config.loop_control.max_iterations <= 0:
        raise ConfigurationError("loop_control.max_iterations must be greater than 0")

    if config.loop_control.iteration_delay < 0:
        raise ConfigurationError("loop_control.iteration_delay cannot be negative")

    if not config.valid_model_prefixes:
        raise ConfigurationError("valid_model_prefixes cannot be empty")

    validate_api_url(config.api_base, config)


def validate_api_url(url: str, config: SwarmConfig) -> None:
    """Validate the API base URL.

    Plain http is accepted only for localhost. Other hosts must match one of
    the configured URL prefixes.

    Args:
        url: URL to validate.
        config: Configuration providing the allowed URL prefixes.

    Raises:
        ConfigurationError: If the URL is not allowed.
    """
    if not url.strip():
        raise ConfigurationError("API URL cannot be empty")

    parsed_url = urlsplit(url)
    if parsed_url.scheme not in ("http", "https") or not parsed_url.hostname:
        raise ConfigurationError(f"Invalid API URL format: {url}")

    if parsed_url.hostname in LOCAL_HOSTS:
        return

    if parsed_url.scheme != "https":
        raise ConfigurationError("API URL must start with https:// (except for localhost)")

    if not any(url.startswith(prefix) for prefix in config.valid_api_url_prefixes):
        raise ConfigurationError(
            f"API URL must start with one of: {', '.join(config.valid_api_url_prefixes)}"
        )


def validate_api_key(api_key: str | None) -> str:
    """Validate an API key.

    Args:
        api_key: Key passed to the constructor or read from the environment.

    Returns:
        The validated key.

    Raises:
        ConfigurationError: If the key is missing or malformed.
    """
    if api_key is None:
        raise ConfigurationError("API key must be set either in environment or passed to Swarm")

    if not api_key.strip():
        raise ConfigurationError("API key cannot be empty")

    if not api_key.startswith("sk-"):
        raise ConfigurationError("Invalid API key format")

    return api_key
