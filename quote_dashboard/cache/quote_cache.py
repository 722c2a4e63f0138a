from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Iterable

from quote_dashboard.schemas.quote import Quote


@dataclass(frozen=True)
class CacheEntry:
    quote: Quote
    captured_at: float

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        return (now - self.captured_at) > ttl_seconds


class QuoteCache:
    """Latest quote per symbol. Entries go stale but are never evicted."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, symbol: str) -> CacheEntry | None:
        with self._lock:
            return self._store.get(symbol)

    def put(self, symbol: str, quote: Quote) -> CacheEntry:
        entry = CacheEntry(quote=quote, captured_at=self._clock())
        with self._lock:
            self._store[symbol] = entry
        return entry

    def get_fresh(self, symbol: str) -> CacheEntry | None:
        entry = self.get(symbol)
        if entry is None or entry.is_expired(self.ttl_seconds, self._clock()):
            return None
        return entry

    def is_fresh(self, symbol: str) -> bool:
        return self.get_fresh(symbol) is not None

    def fresh_count(self, symbols: Iterable[str]) -> int:
        return sum(1 for s in symbols if self.is_fresh(s))

    def has_any_fresh(self) -> bool:
        now = self._clock()
        with self._lock:
            entries = list(self._store.values())
        return any(not e.is_expired(self.ttl_seconds, now) for e in entries)

    def metrics(self) -> dict[str, int]:
        now = self._clock()
        with self._lock:
            entries = list(self._store.values())
        fresh = sum(1 for e in entries if not e.is_expired(self.ttl_seconds, now))
        return {"size": len(entries), "fresh": fresh, "stale": len(entries) - fresh}
