from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Final

from src.models.fingerprint import Fingerprint

# (user agent, viewport width, viewport height)
FINGERPRINT_POOL: Final[tuple[tuple[str, int, int], ...]] = (
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/133.0.0.0 Safari/537.36",
        1366,
        768,
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/132.0.0.0 Safari/537.36",
        1440,
        900,
    ),
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:134.0) Gecko/20100101 Firefox/134.0",
        1536,
        864,
    ),
    (
        "Mozilla/5.0 (X11; Linux x86_64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/133.0.0.0 Safari/537.36",
        1920,
        1080,
    ),
)


class FingerprintSelector:
    def __init__(
        self,
        pool: Sequence[tuple[str, int, int]] = FINGERPRINT_POOL,
        *,
        jitter_px: int = 100,
        rng: random.Random | None = None,
    ) -> None:
        if not pool:
            raise ValueError("Fingerprint pool must not be empty.")
        self._pool = tuple(pool)
        self._jitter_px = max(0, jitter_px)
        self._rng = rng or random.Random()

    def choose(self) -> Fingerprint:
        user_agent, width, height = self._rng.choice(self._pool)
        return Fingerprint(
            user_agent=user_agent,
            viewport_width=width + self._rng.randint(0, self._jitter_px),
            viewport_height=height + self._rng.randint(0, self._jitter_px),
        )
