"""
In-process result cache with lazy time-to-live expiry.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote, unquote

from src.models.review import ScrapeResult


def normalize_cache_key(query: str) -> str:
    """Case-fold and percent-decode the query, then percent-encode it as a key.

    ``"Example%20Cafe"``, ``"example cafe"`` and ``" EXAMPLE CAFE "`` share one key.
    """
    decoded = unquote(query.strip())
    return quote(decoded.casefold(), safe="")


@dataclass(frozen=True)
class CacheEntry:
    result: ScrapeResult
    created_at: float


class ReviewCache:
    """
    Single-node TTL cache. Entries are checked for age on ``get``; nothing is swept
    in the background. Stored results are frozen models, so readers can share them.
    """

    def __init__(self, *, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> ScrapeResult | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self._ttl_seconds:
                del self._entries[key]
                return None
            return entry.result

    def put(self, key: str, result: ScrapeResult) -> CacheEntry:
        entry = CacheEntry(result=result, created_at=self._clock())
        with self._lock:
            self._entries[key] = entry
        return entry

    def entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
