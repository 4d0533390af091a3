"""
Retry with exponential backoff for calls to the commercetools API.

Only the HTTP client retries; the orchestration core never does.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .logging_manager import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    max_attempts: int = 5
    base_delay_seconds: float = 0.2
    max_delay_seconds: float = 10.0
    jitter: bool = True
    retry_on_exceptions: Tuple[Type[BaseException], ...] = (Exception,)

    def compute_backoff(self, attempt_index_zero_based: int) -> float:
        delay = min(self.base_delay_seconds * (2 ** attempt_index_zero_based), self.max_delay_seconds)
        if self.jitter:
            delay = delay * (0.5 + random.random())  # 0.5x - 1.5x jitter window
        return delay


async def with_retry(fn: Callable[[], Awaitable[T]], *, policy: RetryPolicy, description: Optional[str] = None) -> T:
    """
    Await ``fn()`` and retry it on the policy's exceptions.

    Retries up to ``max_attempts`` with exponential backoff and jitter. The last
    exception is re-raised once the attempts are exhausted; exceptions outside
    ``retry_on_exceptions`` are raised immediately.
    """
    last_exc: Optional[BaseException] = None
    for attempt in range(policy.max_attempts):
        try:
            return await fn()
        except policy.retry_on_exceptions as exc:  # type: ignore
            last_exc = exc
            if attempt >= policy.max_attempts - 1:
                break
            delay = policy.compute_backoff(attempt)
            logger.warning(
                f"Retrying {description or 'request'} in {delay:.2f}s after {type(exc).__name__}",
                extra={'details': {'attempt': attempt + 1, 'max_attempts': policy.max_attempts}}
            )
            await asyncio.sleep(delay)

    if last_exc:
        raise last_exc
    raise RuntimeError("with_retry exhausted without exception context")
