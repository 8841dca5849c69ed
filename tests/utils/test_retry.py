# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import asyncio

import pytest

from stepswarm.types.exceptions import APIError, NetworkError, RateLimitError
from stepswarm.utils.retry import retry_with_exponential_backoff


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record sleep delays instead of sleeping."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


@pytest.mark.asyncio
async def test_retries_retriable_errors(sleeps: list[float]) -> None:
    """Test that retriable errors are retried with growing delays."""
    attempts = 0

    async def operation() -> str:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise NetworkError("connection reset")
        return "ok"

    result = await retry_with_exponential_backoff(operation, max_retries=3, initial_delay=1.0)

    assert result == "ok"
    assert attempts == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_delay_is_capped(sleeps: list[float]) -> None:
    """Test that the delay never exceeds max_delay."""

    async def operation() -> str:
        raise RateLimitError("slow down")

    with pytest.raises(RateLimitError):
        await retry_with_exponential_backoff(
            operation,
            max_retries=3,
            initial_delay=4.0,
            max_delay=6.0,
        )

    assert sleeps == [4.0, 6.0, 6.0]


@pytest.mark.asyncio
async def test_non_retriable_errors_fail_fast(sleeps: list[float]) -> None:
    """Test that non-retriable errors are raised on the first attempt."""
    attempts = 0

    async def operation() -> str:
        nonlocal attempts
        attempts += 1
        raise APIError("bad request", status_code=400)

    with pytest.raises(APIError):
        await retry_with_exponential_backoff(operation, max_retries=3)

    assert attempts == 1
    assert sleeps == []
