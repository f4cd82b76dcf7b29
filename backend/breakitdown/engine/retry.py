"""Shared retry policy for completion calls (decomposition and cards)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from breakitdown.config import Settings
from breakitdown.errors import CompletionError, MalformedResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transport, provider and timeout failures are transient; malformed output
# may also differ on a second sample.
RETRYABLE: tuple[type[BaseException], ...] = (CompletionError, MalformedResponse)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay_s: float = 1.0
    multiplier: float = 2.0

    @classmethod
    def from_settings(cls, s: Settings) -> RetryPolicy:
        return cls(
            max_retries=s.retry_max_retries,
            base_delay_s=s.retry_base_delay_s,
            multiplier=s.retry_multiplier,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failure (1-based)."""
        return self.base_delay_s * self.multiplier ** (attempt - 1)

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        label: str = "completion",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Call ``fn`` until it succeeds or attempts run out; re-raises the last error."""

        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning(
                "%s attempt %d/%d failed (%s), retrying in %.1fs",
                label,
                state.attempt_number,
                self.max_attempts,
                exc,
                state.next_action.sleep if state.next_action else 0.0,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay_s, exp_base=self.multiplier),
            retry=retry_if_exception_type(RETRYABLE),
            before_sleep=_log_retry,
            sleep=sleep,
            reraise=True,
        )

        async def _call() -> T:
            return await fn()

        return await retrying(_call)
