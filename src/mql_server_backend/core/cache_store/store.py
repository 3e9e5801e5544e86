"""
Process-wide result cache keyed by query fingerprint.

CacheStore is the single owner of cached results. It is constructed at
service start and ``drop_all`` is its only bulk-mutation entry point.
"""

import hmac
import logging
import threading
from typing import Any, Dict, Optional, Union

from ...exceptions.cache_exceptions import CacheError, CacheUnavailableError
from ..fingerprint import QueryFingerprint
from .backends import CacheBackend, InMemoryCacheBackend
from .barrier import WriteBarrier
from .types import CacheEntry, CachedResult, CacheStats

logger = logging.getLogger(__name__)

FingerprintLike = Union[QueryFingerprint, str]


class CacheStore:
    """
    Fingerprint -> result cache with a guarded bulk clear.

    Puts hold the shared side of a write barrier and ``drop_all`` holds the
    exclusive side, so a clear never interleaves with a write. Each clear
    bumps ``generation``; a put tagged with an older generation was computed
    before the clear and is refused.
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        confirmation_token: Optional[str] = None,
        enabled: bool = True,
    ):
        self.backend = backend if backend is not None else InMemoryCacheBackend()
        self.enabled = enabled
        self._confirmation_token = confirmation_token or None
        self._barrier = WriteBarrier()
        self._generation = 0
        self._stats = CacheStats()
        self._stats_lock = threading.Lock()
        self.logger = logger

    @classmethod
    def from_config(cls, config_manager, backend: Optional[CacheBackend] = None) -> "CacheStore":
        """Build a store from the ``cache`` configuration section."""
        if backend is None:
            backend = InMemoryCacheBackend(
                max_size=config_manager.get("cache.max_size", 1000),
                ttl_seconds=config_manager.get("cache.ttl_seconds"),
            )
        return cls(
            backend=backend,
            confirmation_token=config_manager.get("cache.drop_confirmation_token"),
            enabled=config_manager.get("cache.enabled", True),
        )

    @property
    def generation(self) -> int:
        """Number of completed bulk clears."""
        return self._generation

    def _count(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)

    def get(self, fingerprint: FingerprintLike) -> Optional[CachedResult]:
        """
        Look up a cached result.

        Returns:
            A private copy of the cached payload, or None on a miss

        Raises:
            CacheError: If the backend cannot be read
        """
        if not self.enabled:
            return None

        key = str(fingerprint)
        try:
            entry = self.backend.get(key)
        except Exception as e:
            self._count("errors")
            raise CacheError(f"Cache read failed: {e}", {"fingerprint": key}) from e

        if entry is None:
            self._count("misses")
            return None

        self._count("hits")
        return entry.payload.copy()

    def put(
        self,
        fingerprint: FingerprintLike,
        payload: CachedResult,
        generation: Optional[int] = None,
    ) -> bool:
        """
        Store a result.

        Args:
            fingerprint: Cache key
            payload: Result to cache
            generation: Generation observed before the result was computed

        Returns:
            True if stored, False if the store is disabled or the result is stale

        Raises:
            CacheError: If the backend cannot be written
        """
        if not self.enabled:
            return False

        key = str(fingerprint)
        entry = CacheEntry(fingerprint=key, payload=payload.copy())

        with self._barrier.shared():
            if generation is not None and generation != self._generation:
                self._count("stale_puts_rejected")
                self.logger.info(
                    f"Refusing stale cache write for {key[:12]} "
                    f"(generation {generation}, current {self._generation})"
                )
                return False
            try:
                self.backend.set(key, entry)
            except Exception as e:
                self._count("errors")
                raise CacheError(f"Cache write failed: {e}", {"fingerprint": key}) from e

        self._count("puts")
        return True

    def drop_all(self, confirmation_token: Optional[str]) -> bool:
        """
        Remove every cache entry.

        The token must match the configured confirmation token exactly.
        A missing, mismatched or unconfigured token is a rejection and
        nothing is removed.

        Returns:
            True if the cache was cleared, False if rejected

        Raises:
            CacheError: If the backend fails while clearing
        """
        if not self._token_matches(confirmation_token):
            self._count("drops_rejected")
            self.logger.warning("Rejected cache drop: confirmation token missing or incorrect")
            return False

        with self._barrier.exclusive():
            try:
                removed = self.backend.clear()
            except Exception as e:
                self._count("errors")
                raise CacheError(f"Cache clear failed: {e}") from e
            self._generation += 1

        self._count("drops")
        self.logger.warning(f"Dropped {removed} cache entries (generation {self._generation})")
        return True

    def _token_matches(self, confirmation_token: Optional[str]) -> bool:
        if not self._confirmation_token:
            return False
        if not confirmation_token or not isinstance(confirmation_token, str):
            return False
        return hmac.compare_digest(
            confirmation_token.encode("utf-8"),
            self._confirmation_token.encode("utf-8"),
        )

    def ping(self) -> None:
        """
        Check backend reachability.

        Raises:
            CacheUnavailableError: If the backend is unreachable
        """
        try:
            self.backend.ping()
        except Exception as e:
            raise CacheUnavailableError(f"Cache backend unreachable: {e}") from e

    def stats(self) -> Dict[str, Any]:
        """Cache activity counters."""
        with self._stats_lock:
            stats = CacheStats(**vars(self._stats))
        try:
            size = self.backend.size()
        except Exception:
            size = None
        return {
            "enabled": self.enabled,
            "hits": stats.hits,
            "misses": stats.misses,
            "hit_rate": stats.hit_rate,
            "puts": stats.puts,
            "stale_puts_rejected": stats.stale_puts_rejected,
            "drops": stats.drops,
            "drops_rejected": stats.drops_rejected,
            "errors": stats.errors,
            "size": size,
            "generation": self._generation,
        }

    @property
    def size(self) -> int:
        """Get current cache size."""
        return self.backend.size()
