"""Bounded polling primitive.

Attempt 1 runs immediately; each later attempt follows exactly one interval
sleep. A FAILED outcome stops the loop at once, PENDING keeps waiting until the
attempt ceiling is reached.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging

from stackctl.startup.models import (
    Observation,
    PollResult,
    PollStatus,
    ReadinessOutcome,
    ReadinessStatus,
)

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[Observation]]
Predicate = Callable[[Observation], ReadinessOutcome]
AttemptCallback = Callable[[int, Observation, ReadinessOutcome], None]
Sleep = Callable[[float], Awaitable[None]]


async def poll_until(
    probe: Probe,
    predicate: Predicate,
    interval: float,
    max_attempts: int,
    *,
    on_attempt: AttemptCallback | None = None,
    sleep: Sleep = asyncio.sleep,
) -> PollResult:
    """Poll ``probe`` until ``predicate`` reports READY or FAILED.

    Args:
        probe: Coroutine factory returning a fresh observation
        predicate: Readiness policy applied to each observation
        interval: Seconds slept between attempts
        max_attempts: Attempt ceiling, at least 1
        on_attempt: Called after every attempt, e.g. to print a progress mark
        sleep: Sleep coroutine, injectable for tests

    Returns:
        READY, FAILED with the policy's reason, or TIMED_OUT with the last
        pending reason and observation.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be at least 1, got {max_attempts}"
        raise ValueError(msg)
    if interval < 0:
        msg = f"interval must not be negative, got {interval}"
        raise ValueError(msg)

    observation: Observation | None = None
    outcome = ReadinessOutcome.pending()

    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            await sleep(interval)

        observation = await probe()
        outcome = predicate(observation)

        if on_attempt is not None:
            on_attempt(attempt, observation, outcome)

        if outcome.status is ReadinessStatus.READY:
            return PollResult(PollStatus.READY, attempt, outcome.reason, observation)
        if outcome.status is ReadinessStatus.FAILED:
            logger.info(
                "%s failed on attempt %d: %s", observation.service, attempt, outcome.reason
            )
            return PollResult(PollStatus.FAILED, attempt, outcome.reason, observation)

    logger.info(
        "Gave up after %d attempts: %s",
        max_attempts,
        outcome.reason or "still pending",
    )
    return PollResult(
        PollStatus.TIMED_OUT,
        max_attempts,
        f"timed out after {max_attempts} attempts; last state: "
        f"{outcome.reason or 'pending'}",
        observation,
    )
