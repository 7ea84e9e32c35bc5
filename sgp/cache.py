from __future__ import annotations

import threading
from typing import Callable, Dict, Mapping, Optional

from utils import now_ms

from .config import CACHE_KEY_PREFIX, QUOTE_CACHE_TTL, QUOTE_STALE_THRESHOLD, logger
from .models import SgpBookOdds, SgpQuoteCacheEntry


def cache_key(legs_hash: str) -> str:
    return f"{CACHE_KEY_PREFIX}:{legs_hash}"


class QuoteCache:
    """
    Process-local TTL store for SGP quotes, keyed ``sgp_quote:{hash}``.

    Entries are replaced whole under a lock; concurrent writers to the same
    key resolve last-writer-wins. Expired entries are dropped on read.
    """

    def __init__(self, *, ttl_seconds: float = QUOTE_CACHE_TTL,
                 stale_after_seconds: float = QUOTE_STALE_THRESHOLD,
                 clock: Callable[[], int] = now_ms):
        self.ttl_seconds = ttl_seconds
        self.stale_after_seconds = stale_after_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, SgpQuoteCacheEntry] = {}

    def get(self, legs_hash: str) -> Optional[SgpQuoteCacheEntry]:
        key = cache_key(legs_hash)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug("cache expired %s", key)
                return None
            return entry

    def set(self, legs_hash: str, quotes: Mapping[str, SgpBookOdds],
            ttl_seconds: Optional[float] = None) -> SgpQuoteCacheEntry:
        entry = SgpQuoteCacheEntry(
            legs_hash=legs_hash,
            quotes=dict(quotes),
            cached_at=self._clock(),
            ttl_seconds=self.ttl_seconds if ttl_seconds is None else ttl_seconds,
        )
        with self._lock:
            self._entries[cache_key(legs_hash)] = entry
        return entry

    def update_cached_quote(self, legs_hash: str, book: str, quote: SgpBookOdds,
                            ttl_seconds: Optional[float] = None) -> SgpQuoteCacheEntry:
        """Write one book's quote, creating the entry if needed.

        ``ttl_seconds`` is the lifetime wanted for an error-only entry. Once
        any book in the entry has a price the full TTL applies.
        """
        current = self.get(legs_hash)
        quotes = dict(current.quotes) if current else {}
        quotes[book] = quote
        if any(q.ok for q in quotes.values()):
            ttl = current.ttl_seconds if current is not None and current.has_price else None
        elif current is None or ttl_seconds is None:
            ttl = ttl_seconds if current is None else current.ttl_seconds
        else:
            ttl = min(current.ttl_seconds, ttl_seconds)
        return self.set(legs_hash, quotes, ttl)

    def invalidate(self, legs_hash: str) -> None:
        with self._lock:
            self._entries.pop(cache_key(legs_hash), None)

    def is_stale(self, entry: SgpQuoteCacheEntry) -> bool:
        return entry.age_ms(self._clock()) > self.stale_after_seconds * 1000

    def age_ms(self, entry: SgpQuoteCacheEntry) -> int:
        return entry.age_ms(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
