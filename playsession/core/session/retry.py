"""
Retry Executor

Bounded re-attempts with an optional exponentially growing pause between them.
Transient timing failures get absorbed; a deterministic defect fails every
attempt and surfaces as the original exception.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from ...exceptions import RetryExhaustedError, SessionNotActiveError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RetryExecutor:
    """
    Runs one unit of work up to ``max_retries`` times.

    Args:
        max_retries: Total number of attempts (at least 1)
        delay_ms: Base pause between attempts, in milliseconds
        backoff: Double the pause after every failed attempt
        wrap_last_error: Raise RetryExhaustedError instead of the last error
        give_up_on: Exception types that end the loop immediately
        sleep: Coroutine used to wait; injectable for tests
    """

    def __init__(self, max_retries: int = 3, delay_ms: float = 1000, backoff: bool = True,
                 wrap_last_error: bool = False,
                 give_up_on: Tuple[Type[BaseException], ...] = (SessionNotActiveError,),
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if delay_ms < 0:
            raise ValueError("delay_ms must be non-negative")
        self.max_retries = max_retries
        self.delay_ms = delay_ms
        self.backoff = backoff
        self.wrap_last_error = wrap_last_error
        self.give_up_on = give_up_on
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, **overrides: Any) -> 'RetryExecutor':
        params = {
            'max_retries': config.get("retry.max_attempts", 3),
            'delay_ms': config.get("retry.delay", 1000),
            'backoff': config.get("retry.backoff", True),
        }
        params.update(overrides)
        return cls(**params)

    def delay_for(self, attempt_index: int) -> float:
        """Seconds to wait after the zero-based ``attempt_index`` failed."""
        factor = 2 ** attempt_index if self.backoff else 1
        return self.delay_ms * factor / 1000.0

    async def run(self, attempt: Callable[[], Awaitable[T]], description: str = "action") -> T:
        last_error: Optional[BaseException] = None

        for attempt_index in range(self.max_retries):
            try:
                return await attempt()
            except self.give_up_on:
                raise
            except Exception as e:
                last_error = e
                if attempt_index == self.max_retries - 1:
                    break
                wait = self.delay_for(attempt_index)
                logger.warning(
                    f"🔄 {description} failed (attempt {attempt_index + 1}/{self.max_retries}): {e}. "
                    f"Retrying in {wait:.2f}s"
                )
                await self._sleep(wait)

        logger.error(f"{description} failed after {self.max_retries} attempt(s): {last_error}")
        if self.wrap_last_error:
            raise RetryExhaustedError(self.max_retries, last_error) from last_error
        raise last_error
