# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from stepswarm.types.exceptions import SwarmError
from stepswarm.utils.logging import log_verbose

_RetryReturnType = TypeVar("_RetryReturnType")


async def retry_with_exponential_backoff(
    operation: Callable[[], Awaitable[_RetryReturnType]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    backoff_factor: float = 2.0,
) -> _RetryReturnType:
    """Execute an operation, retrying retriable Swarm errors with exponential backoff.

    The engine never retries on its own; wrap a whole run with this helper to
    get a retry policy for network, timeout and rate-limit errors. Any other
    error is raised immediately.

    Args:
        operation: Async operation to execute
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        backoff_factor: Factor to multiply delay by after each retry

    Returns:
        The result of the operation if successful

    Raises:
        SwarmError: The last retriable error if all retries fail, or the
            first non-retriable error.

    Example:
        ```python
        response = await retry_with_exponential_backoff(
            lambda: swarm.run(agent, messages),
            max_retries=swarm.config.max_retries,
        )
        ```
    """
    delay = initial_delay

    for attempt in range(max_retries + 1):
        try:
            return await operation()
        except SwarmError as e:
            if not e.is_retriable or attempt == max_retries:
                raise

            log_verbose(
                "Attempt %d/%d failed: %s. Retrying in %.1f seconds...",
                attempt + 1,
                max_retries + 1,
                str(e),
                delay,
                level="WARNING",
            )

            await asyncio.sleep(delay)
            delay = min(delay * backoff_factor, max_delay)

    raise AssertionError("unreachable")
