from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from jobpost.ai.types import TransientCompletionError
from jobpost.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, (TransientCompletionError, asyncio.TimeoutError))


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_s: float = 0.3
    jitter_s: float = 0.1
    retryable: Callable[[BaseException], bool] = field(default=is_retryable)

    def delay_for(self, attempt: int, rng: random.Random | None = None) -> float:
        """Exponential backoff for the retry after `attempt` (1-based), plus jitter."""
        jitter = (rng or random).uniform(0, self.jitter_s) if self.jitter_s > 0 else 0.0
        return self.base_delay_s * (2 ** (attempt - 1)) + jitter


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=max(1, settings.retry_max_attempts),
        base_delay_s=max(0.0, settings.retry_base_delay_s),
        jitter_s=max(0.0, settings.retry_jitter_s),
    )


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: SleepFn = asyncio.sleep,
    label: str = "call",
) -> T:
    policy = policy or default_retry_policy()
    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= policy.max_attempts or not policy.retryable(exc):
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "retrying label=%s attempt=%s/%s delay_ms=%s error=%s",
                label,
                attempt,
                policy.max_attempts,
                int(delay * 1000),
                exc,
            )
            await sleep(delay)
            attempt += 1
