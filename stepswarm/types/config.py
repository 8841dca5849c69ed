# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from typing import Final

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_API_BASE: Final = "https://api.openai.com/v1"
"""Default OpenAI-compatible API base URL."""

DEFAULT_REQUEST_TIMEOUT: Final = 30.0
"""Default total request timeout in seconds."""

DEFAULT_CONNECT_TIMEOUT: Final = 10.0
"""Default connection timeout in seconds."""

MIN_REQUEST_TIMEOUT: Final = 1.0
"""Smallest accepted total request timeout in seconds."""

MAX_REQUEST_TIMEOUT: Final = 600.0
"""Largest accepted total request timeout in seconds."""

VALID_API_URL_PREFIXES: Final = (
    "https://api.openai.com",
    "https://api.azure.com/openai",
)
"""API base URLs accepted by default."""


class LoopControl(BaseModel):
    """Settings for `loop` steps of a step program."""

    max_iterations: int = 10
    """Maximum number of iterations of a single `loop` step."""

    iteration_delay: float = 0.0
    """Pause between loop iterations in seconds."""

    model_config = ConfigDict(use_attribute_docstrings=True)


class SwarmConfig(BaseModel):
    """Static configuration of a Swarm.

    Validated once when the Swarm is constructed and treated as read-only
    afterwards.

    Examples:
        Point the engine at a local OpenAI-compatible server:
            ```python
            config = SwarmConfig(
                api_base="http://localhost:8000/v1",
                valid_model_prefixes=["gpt-", "llama"],
                loop_control=LoopControl(max_iterations=3),
            )
            swarm = Swarm(agents=[agent], config=config)
            ```
    """

    api_base: str = DEFAULT_API_BASE
    """Base URL of the OpenAI-compatible API."""

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    """Total request timeout in seconds."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    """Connection timeout in seconds."""

    max_retries: int = 3
    """Retry budget for callers that retry retriable errors; the engine never retries."""

    max_loop_iterations: int = 10
    """Ceiling for the `max_turns` argument of a run."""

    loop_control: LoopControl = Field(default_factory=LoopControl)
    """Settings for `loop` steps."""

    valid_model_prefixes: list[str] = Field(default_factory=lambda: ["gpt-"])
    """Model name prefixes accepted for registry agents."""

    valid_api_url_prefixes: list[str] = Field(default_factory=lambda: list(VALID_API_URL_PREFIXES))
    """API base URL prefixes accepted besides localhost."""

    model_config = ConfigDict(
        frozen=True,
        use_attribute_docstrings=True,
    )

    @property
    def chat_completions_url(self) -> str:
        """Full URL of the chat completions endpoint."""
        return f"{self.api_base.rstrip('/')}/chat/completions"
