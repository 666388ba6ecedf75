"""Retry-with-backoff for rate-limited upstream calls.

Only rate-limit failures are retried. Every other failure propagates unchanged
on the first attempt, so a broken request is never hammered.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from agents.errors import AssistantError, UpstreamRateLimited

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429
RATE_LIMIT_MESSAGE = re.compile(r"\b429\b")


@dataclass(frozen=True)
class BackoffProfile:
    """Tuning for one call site: delays in milliseconds, total invocation budget."""

    base_delay_ms: float
    cap_delay_ms: float
    max_attempts: int

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0 or self.cap_delay_ms < 0:
            raise ValueError("delays must be non-negative")


def is_rate_limited(error: BaseException) -> bool:
    """Return True when the error signals HTTP 429 or an equivalent throttle."""

    if isinstance(error, UpstreamRateLimited):
        return True

    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    if status is not None:
        return status == RATE_LIMIT_STATUS

    # Typed errors already carry their status; only untyped ones are matched by message.
    if isinstance(error, (AssistantError, OSError)):
        return False
    return RATE_LIMIT_MESSAGE.search(str(error)) is not None


class BackoffRetrier:
    """Runs async operations under a backoff profile."""

    def __init__(
        self,
        profile: BackoffProfile,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.profile = profile
        self._sleep = sleep
        self._uniform = uniform

    def delay_ms(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), capped."""

        base = self.profile.base_delay_ms
        raw = base * (2**attempt) + self._uniform(0.0, base)
        return min(self.profile.cap_delay_ms, raw)

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str = "operation") -> T:
        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as exc:
                if not is_rate_limited(exc) or attempt >= self.profile.max_attempts:
                    raise

                delay = self.delay_ms(attempt)
                LOGGER.warning(
                    "%s rate limited. Retrying in %.0fms (attempt %d/%d)",
                    label,
                    delay,
                    attempt,
                    self.profile.max_attempts,
                )
                await self._sleep(delay / 1000)
                attempt += 1


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    base_delay_ms: float,
    cap_delay_ms: float,
) -> T:
    """One-off retry without building a retrier first."""

    profile = BackoffProfile(
        base_delay_ms=base_delay_ms,
        cap_delay_ms=cap_delay_ms,
        max_attempts=max_attempts,
    )
    return await BackoffRetrier(profile).run(operation)
