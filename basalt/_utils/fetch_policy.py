"""
Two-tier cache policy for resource reads.

A read is served from the short-lived query cache when possible, then from
the live API. When the live call fails, the last good value kept in the
fallback cache is returned instead of the error.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable, Optional

from .._http.errors import BasaltError
from ..observability.attributes import BasaltSpanAttributes, CacheType
from ..observability.span import SpanHandle
from .cache import MemoryCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Value returned by a live fetch, with the server's optional warning."""

    value: Any
    warning: Optional[str] = None


@dataclass(frozen=True)
class FetchOutcome:
    """Value served to the caller and the tier it came from."""

    value: Any
    cache_type: str = CacheType.NONE

    @property
    def from_cache(self) -> bool:
        return self.cache_type != CacheType.NONE


class TwoTierFetchPolicy:
    """
    Query cache, live fetch, then fallback cache.

    Args:
        query_cache: Cache read before the live fetch (finite TTL)
        fallback_cache: Cache of last good values (never expires)
        ttl: Query cache TTL in seconds
        fallback_requires_cache: Only consult the fallback cache when the
            read has caching enabled
        resource: Resource name used in log messages
    """

    def __init__(
        self,
        query_cache: MemoryCache,
        fallback_cache: MemoryCache,
        *,
        ttl: float,
        fallback_requires_cache: bool,
        resource: str = "resource",
    ):
        self.query_cache = query_cache
        self.fallback_cache = fallback_cache
        self.ttl = ttl
        self.fallback_requires_cache = fallback_requires_cache
        self.resource = resource

    async def fetch(
        self,
        key: Hashable,
        fetcher: Callable[[], Awaitable[FetchResult]],
        *,
        cache_enabled: bool = True,
        span: Optional[SpanHandle] = None,
    ) -> FetchOutcome:
        """
        Serve ``key`` through the cache tiers.

        Raises:
            BasaltError: The live fetch failed and no fallback value exists
        """
        if cache_enabled:
            cached = self.query_cache.get(key)
            if cached is not None:
                _annotate(span, True, CacheType.QUERY)
                return FetchOutcome(cached, CacheType.QUERY)

        try:
            result = await fetcher()
        except BasaltError as e:
            fallback = None
            if cache_enabled or not self.fallback_requires_cache:
                fallback = self.fallback_cache.get(key)

            if fallback is None:
                _annotate(span, False, CacheType.NONE)
                raise

            logger.warning(
                f"Basalt Warning: Failed to fetch {self.resource} from API ({e.message}), "
                f'using last result for "{key}"'
            )
            _annotate(span, True, CacheType.FALLBACK)
            return FetchOutcome(fallback, CacheType.FALLBACK)

        self.query_cache.set(key, result.value, self.ttl)
        self.fallback_cache.set(key, result.value, math.inf)

        if result.warning:
            logger.warning(f'Basalt Warning: "{result.warning}"')

        _annotate(span, False, CacheType.NONE)
        return FetchOutcome(result.value, CacheType.NONE)


def _annotate(span: Optional[SpanHandle], hit: bool, cache_type: str) -> None:
    if span is None:
        return
    span.set_attributes({
        BasaltSpanAttributes.CACHE_HIT: hit,
        BasaltSpanAttributes.CACHE_TYPE: cache_type,
    })
