"""In-process cache for driving distances between address pairs."""

from __future__ import annotations

import hashlib
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable

from .models import CachedDistance

DEFAULT_EXPIRY_DAYS = 30
DEFAULT_MAX_SIZE = 10000
# Share of entries dropped when the cache is full.
EVICTION_FRACTION = 0.1
SECONDS_PER_DAY = 24 * 60 * 60

_WHITESPACE = re.compile(r"\s+")

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    """Case-fold, collapse whitespace and strip leading/trailing commas and spaces."""
    text = _WHITESPACE.sub(" ", address.lower())
    return text.strip(", ").strip()


def make_key(origin: str, destination: str) -> str:
    """Key for the unordered address pair, so A->B and B->A share an entry."""
    addresses = sorted((normalize_address(origin), normalize_address(destination)))
    return hashlib.md5("|".join(addresses).encode("utf-8")).hexdigest()


@dataclass(slots=True)
class CacheEntry:
    result: CachedDistance
    timestamp: float
    origin: str
    destination: str


class DistanceCache:
    """Bounded, time-expiring map of address pair -> distance lookup.

    Entries expire ``expiry_days`` after they were stored. When ``max_size``
    is reached the oldest tenth of the entries (insertion order) is dropped
    before a new one is added. Nothing is persisted; a restart starts empty.
    """

    def __init__(
        self,
        *,
        expiry_days: int = DEFAULT_EXPIRY_DAYS,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.expiry_days = expiry_days
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @property
    def expiry_seconds(self) -> float:
        return self.expiry_days * SECONDS_PER_DAY

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.expiry_seconds

    def get(self, origin: str, destination: str) -> CachedDistance | None:
        key = make_key(origin, destination)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        logger.debug(f"Distance cache hit: {origin} <-> {destination} ({entry.result.distance_text})")
        return entry.result

    def set(self, origin: str, destination: str, result: CachedDistance) -> None:
        key = make_key(origin, destination)

        if key not in self._entries and len(self._entries) >= self.max_size:
            evict_count = max(1, int(self.max_size * EVICTION_FRACTION))
            for stale_key in list(self._entries)[:evict_count]:
                del self._entries[stale_key]
            logger.info(f"Distance cache full; evicted {evict_count} oldest entries")

        # Re-inserting moves the key to the end so eviction stays oldest-first.
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            result=result,
            timestamp=self._clock(),
            origin=normalize_address(origin),
            destination=normalize_address(destination),
        )
        logger.debug(f"Distance cache stored: {origin} <-> {destination} ({result.distance_text})")

    def cleanup(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired distance cache entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "expiry_days": self.expiry_days,
            "hits": self.hits,
            "misses": self.misses,
        }
