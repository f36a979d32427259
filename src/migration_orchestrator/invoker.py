"""Fixed-delay retry wrapper around generative model calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from src.migration_orchestrator.exceptions import PipelineError, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Provider status codes meaning "overloaded" and "rate limited".
TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 503})


def is_transient(exc: BaseException) -> bool:
    """Return True when *exc* signals a retryable provider condition."""
    if isinstance(exc, TransientProviderError):
        return True
    if isinstance(exc, PipelineError):
        return False
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in TRANSIENT_STATUS_CODES
    # Third-party SDK errors only carry the status code in their message.
    message = str(exc)
    return any(str(code) in message for code in TRANSIENT_STATUS_CODES)


class ResilientInvoker:
    """Run an async call, retrying transient failures after a fixed delay.

    The delay does not grow between attempts.  Non-transient errors are
    raised immediately; once the attempts are used up the last transient
    error is raised.  Substituting a fallback is left to the caller.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay < 0:
            raise ValueError("base_delay must not be negative")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    async def invoke(
        self, call: Callable[[], Awaitable[T]], label: str = "model call"
    ) -> T:
        """Await ``call()`` up to ``max_attempts`` times."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await call()
            except Exception as exc:
                if not is_transient(exc) or attempt == self.max_attempts:
                    raise
                logger.warning(
                    "Transient failure in %s (attempt %d/%d), retrying in %.1fs: %s",
                    label, attempt, self.max_attempts, self.base_delay, exc,
                )
                await self._sleep(self.base_delay)
        # Unreachable: the loop either returns or raises.
        raise AssertionError("retry loop exited without a result")
