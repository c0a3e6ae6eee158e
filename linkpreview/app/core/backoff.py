"""Backoff utilities.

`exponential_backoff` is an async generator used by connection helpers: each
iteration yields `(attempt, delay)` for the caller to try an operation, then sleeps
before handing out the next attempt. Iteration stops after `max_attempts`.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
) -> AsyncIterator[tuple[int, float]]:
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        yield attempt, delay
        if attempt < max_attempts:
            await asyncio.sleep(delay)
            delay = min(delay * multiplier, max_delay)
