"""
ragcore — Retry with Exponential Backoff

Embedding calls sit on the critical retrieval path, so transient provider
failures (timeouts, 429s, connection resets) are retried a bounded number
of times before the orchestrator turns them into a RetrievalError.
Classification is delegated to is_retryable_error(); anything else is
raised on the first attempt.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ..errors import is_retryable_error

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, Exception], None]


@dataclass
class RetryConfig:
    """
    Backoff policy for one call site.

    Attempt n (0-indexed) waits base_delay * exponential_base**n seconds,
    capped at max_delay, then spread by +/- jitter_factor when jitter is on.
    max_retries counts retries, so a call runs at most max_retries + 1 times.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1

    def __post_init__(self) -> None:
        problems = []
        if self.max_retries < 0:
            problems.append("max_retries must be non-negative")
        if self.base_delay <= 0:
            problems.append("base_delay must be positive")
        elif self.max_delay < self.base_delay:
            problems.append("max_delay must not be smaller than base_delay")
        if self.exponential_base < 1.0:
            problems.append("exponential_base must be at least 1.0")
        if not 0.0 <= self.jitter_factor <= 1.0:
            problems.append("jitter_factor must be within [0, 1]")
        if problems:
            raise ValueError("; ".join(problems))

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep before retry number attempt + 1."""
        return exponential_backoff(
            attempt,
            base_delay=self.base_delay,
            exponential_base=self.exponential_base,
            max_delay=self.max_delay,
            jitter=self.jitter,
            jitter_factor=self.jitter_factor,
        )


def exponential_backoff(
    attempt: int,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    jitter_factor: float = 0.1,
) -> float:
    """
    Backoff delay for a 0-indexed attempt.

    >>> exponential_backoff(0, jitter=False)
    1.0
    >>> exponential_backoff(3, jitter=False)
    8.0
    """
    delay = min(max_delay, base_delay * exponential_base**attempt)
    if not jitter or jitter_factor <= 0:
        return delay

    spread = delay * jitter_factor
    return max(0.0, random.uniform(delay - spread, delay + spread))


async def with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: RetryConfig | None = None,
    on_retry: RetryCallback | None = None,
    **kwargs: Any,
) -> Any:
    """
    Await func(*args, **kwargs), retrying retryable failures.

    Args:
        func: Coroutine function to call
        config: Backoff policy (defaults to RetryConfig())
        on_retry: Called as on_retry(retry_number, error) before each sleep

    Raises:
        The first non-retryable error, or the last error once retries run out
    """
    policy = config or RetryConfig()
    operation = getattr(func, "__qualname__", None) or repr(func)
    attempt = 0

    while True:
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            error_type = type(e).__name__
            if not is_retryable_error(e):
                logger.debug(
                    f"{operation} failed with non-retryable {error_type}",
                    extra={"operation": operation, "error_type": error_type},
                )
                raise
            if attempt >= policy.max_retries:
                logger.error(
                    f"{operation} failed after {attempt + 1} attempts",
                    extra={"operation": operation, "attempts": attempt + 1, "error_type": error_type, "error": str(e)},
                )
                raise

            delay = policy.delay_for(attempt)
            attempt += 1
            logger.warning(
                f"Retrying {operation} ({attempt}/{policy.max_retries}) in {delay:.2f}s",
                extra={"operation": operation, "retry": attempt, "delay_seconds": delay, "error_type": error_type},
            )
            if on_retry is not None:
                on_retry(attempt, e)
            await asyncio.sleep(delay)
        else:
            if attempt:
                logger.info(
                    f"{operation} succeeded on retry {attempt}",
                    extra={"operation": operation, "retry": attempt},
                )
            return result
