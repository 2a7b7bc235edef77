"""
Bounded exponential backoff for chat-completion requests.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .exceptions import LLMClientError, is_retryable
from ...utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Limits for retrying one request."""
    max_attempts: int = 3
    initial_backoff: float = 1.0
    max_backoff: float = 10.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")


@dataclass
class RetryState:
    """Progress of a single retried call."""
    attempt: int = 0
    backoff: float = 0.0
    last_error: Optional[BaseException] = None


DEFAULT_RETRY_POLICY = RetryPolicy()


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``fn`` until it succeeds, fails terminally, or the budget runs out.

    The first attempt runs immediately. Later attempts wait ``backoff``
    seconds first, doubling each time up to ``policy.max_backoff``. The wait
    is an ordinary await, so cancelling the calling task interrupts it with
    ``asyncio.CancelledError``.

    Raises:
        LLMClientError: the last error seen, unchanged
    """
    state = RetryState(backoff=policy.initial_backoff)

    for attempt in range(policy.max_attempts):
        state.attempt = attempt
        if state.attempt > 0:
            logger.debug(
                f"Retrying request in {state.backoff:.1f}s "
                f"(attempt {state.attempt + 1}/{policy.max_attempts})"
            )
            await sleep(state.backoff)
            state.backoff = min(state.backoff * 2, policy.max_backoff)

        try:
            return await fn()
        except LLMClientError as e:
            state.last_error = e
            if not is_retryable(e):
                raise
            logger.debug(f"Retryable failure on attempt {state.attempt + 1}: {e}")

    raise state.last_error
