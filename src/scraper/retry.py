"""Retry with exponential backoff for whole scrape attempts.

One attempt is a full session-open -> navigate -> extract pipeline, so a retry
always starts from a fresh browser with a fresh fingerprint.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.scraper.errors import ScrapeError, ScrapeErrorKind

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetryOrchestrator:
    def __init__(
        self,
        *,
        base_delay_ms: int = 1000,
        min_jitter: float = 0.8,
        max_jitter: float = 1.2,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if min_jitter <= 0 or max_jitter < min_jitter:
            raise ValueError("Jitter band must satisfy 0 < min_jitter <= max_jitter.")
        self._base_delay_ms = max(0, base_delay_ms)
        self._min_jitter = min_jitter
        self._max_jitter = max_jitter
        self._rng = rng or random.Random()
        self._sleep = sleep

    def backoff_seconds(self, attempt_index: int) -> float:
        """``base * 2**attempt_index`` scaled by a random factor from the jitter band."""
        jitter = self._rng.uniform(self._min_jitter, self._max_jitter)
        return self._base_delay_ms * (2**attempt_index) * jitter / 1000

    async def run(
        self,
        attempt_fn: Callable[[int], Awaitable[T]],
        max_retries: int,
        *,
        request_id: str = "",
    ) -> T:
        """Call ``attempt_fn(attempt_index)`` until it succeeds or ``max_retries`` calls were made.

        ``INVALID_QUERY`` is re-raised at once. Any other ``ScrapeError`` from the
        final attempt is re-raised unchanged; an untyped final failure becomes
        ``EXHAUSTED``.

        Raises:
            ScrapeError: On a non-retryable error or when all attempts failed.
        """
        total_attempts = max(1, max_retries)
        last_error: Exception | None = None

        for attempt_index in range(total_attempts):
            try:
                return await attempt_fn(attempt_index)
            except ScrapeError as exc:
                if not exc.kind.retryable:
                    raise
                last_error = exc
                kind = exc.kind.value
            except Exception as exc:
                last_error = exc
                kind = type(exc).__name__

            if attempt_index + 1 >= total_attempts:
                break

            delay = self.backoff_seconds(attempt_index)
            LOGGER.warning(
                "request_id=%s attempt %d/%d failed kind=%s detail=%s; retrying in %.2fs",
                request_id,
                attempt_index + 1,
                total_attempts,
                kind,
                last_error,
                delay,
            )
            await self._sleep(delay)

        LOGGER.error(
            "request_id=%s all %d attempts failed; last error: %s",
            request_id,
            total_attempts,
            last_error,
        )
        if isinstance(last_error, ScrapeError):
            raise last_error
        raise ScrapeError(
            ScrapeErrorKind.EXHAUSTED,
            f"All {total_attempts} attempts failed: {last_error}",
        ) from last_error
