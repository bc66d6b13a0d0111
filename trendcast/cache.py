"""
In-memory result cache with per-entry expiry.

Optional: the analysis itself never touches it. Callers key results by
symbol and horizon. There is no locking, so two callers that miss the same
key at once both compute it.
"""
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

__all__ = ["ResultCache", "make_key"]

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
# Expired entries are swept every this many inserts.
CLEANUP_EVERY = 50


def make_key(*parts: Any) -> str:
    """MD5 hex digest of the string form of `parts`."""
    raw = "|".join(repr(p) for p in parts)
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


@dataclass
class _Entry:
    value: Any
    expires: float


class ResultCache:
    """
    A dict of values that expire `ttl_seconds` after they are stored.

    `clock` returns the current time in seconds; it defaults to
    `time.monotonic` and is injectable for tests.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._inserts = 0
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() > entry.expires:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def put(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = _Entry(value=value, expires=self._clock() + ttl)
        self._inserts += 1
        if self._inserts % CLEANUP_EVERY == 0:
            self.clean_expired()

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        """Returns the cached value for `key`, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            log.info("Cache hit for key: %s", key)
            return cached

        log.info("Cache miss for key: %s - computing", key)
        value = compute()
        if value is not None:
            self.put(key, value)
        return value

    def clean_expired(self) -> int:
        """Drops expired entries and returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now > e.expires]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("Removed %d expired cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> Dict[str, float]:
        total = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }

    def __len__(self) -> int:
        return len(self._entries)
