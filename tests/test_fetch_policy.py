"""Tests for the two-tier cache fetch policy."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from basalt._http.errors import ConnectionError, ServerError
from basalt._utils.cache import MemoryCache
from basalt._utils.fetch_policy import FetchResult, TwoTierFetchPolicy
from basalt.observability.attributes import BasaltSpanAttributes, CacheType


def make_policy(fake_clock, *, fallback_requires_cache=True, ttl=300.0):
    return TwoTierFetchPolicy(
        MemoryCache(clock=fake_clock),
        MemoryCache(clock=fake_clock),
        ttl=ttl,
        fallback_requires_cache=fallback_requires_cache,
        resource="prompt",
    )


def annotations(span):
    """Attributes written through ``span.set_attributes``."""
    merged = {}
    for call in span.set_attributes.call_args_list:
        merged.update(call.args[0])
    return merged


class TestQueryCache:
    """Fresh query-cache entries short-circuit the live fetch."""

    @pytest.mark.asyncio
    async def test_hit_skips_fetch(self, fake_clock):
        policy = make_policy(fake_clock)
        policy.query_cache.set("key", "cached", 300)
        fetcher = AsyncMock()
        span = MagicMock()

        outcome = await policy.fetch("key", fetcher, span=span)

        assert outcome.value == "cached"
        assert outcome.cache_type == CacheType.QUERY
        assert outcome.from_cache is True
        fetcher.assert_not_awaited()
        assert annotations(span) == {
            BasaltSpanAttributes.CACHE_HIT: True,
            BasaltSpanAttributes.CACHE_TYPE: "query",
        }

    @pytest.mark.asyncio
    async def test_disabled_cache_forces_fetch(self, fake_clock):
        policy = make_policy(fake_clock)
        policy.query_cache.set("key", "cached", 300)
        fetcher = AsyncMock(return_value=FetchResult("fresh"))

        outcome = await policy.fetch("key", fetcher, cache_enabled=False)

        assert outcome.value == "fresh"
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_fetch(self, fake_clock):
        policy = make_policy(fake_clock, ttl=1.0)
        fetcher = AsyncMock(side_effect=[FetchResult("first"), FetchResult("second")])

        assert (await policy.fetch("key", fetcher)).value == "first"
        assert (await policy.fetch("key", fetcher)).value == "first"
        fake_clock.advance(1.5)
        assert (await policy.fetch("key", fetcher)).value == "second"
        assert fetcher.await_count == 2


class TestLiveFetch:
    """Successful fetches populate both caches."""

    @pytest.mark.asyncio
    async def test_success_writes_both_caches(self, fake_clock):
        policy = make_policy(fake_clock)
        span = MagicMock()

        outcome = await policy.fetch("key", AsyncMock(return_value=FetchResult("value")), span=span)

        assert outcome.value == "value"
        assert outcome.from_cache is False
        assert policy.query_cache.get("key") == "value"
        fake_clock.advance(10 ** 6)
        assert policy.query_cache.get("key") is None
        assert policy.fallback_cache.get("key") == "value"
        assert annotations(span)[BasaltSpanAttributes.CACHE_HIT] is False

    @pytest.mark.asyncio
    async def test_server_warning_is_logged(self, fake_clock, caplog):
        policy = make_policy(fake_clock)
        fetcher = AsyncMock(return_value=FetchResult("value", warning="Prompt is deprecated"))

        with caplog.at_level(logging.WARNING, logger="basalt._utils.fetch_policy"):
            outcome = await policy.fetch("key", fetcher)

        assert outcome.value == "value"
        assert 'Basalt Warning: "Prompt is deprecated"' in caplog.text


class TestFallback:
    """Failures are masked by the fallback cache when it holds a value."""

    @pytest.mark.asyncio
    async def test_failure_served_from_fallback(self, fake_clock, caplog):
        policy = make_policy(fake_clock)
        await policy.fetch("key", AsyncMock(return_value=FetchResult("old")))
        fake_clock.advance(301)
        span = MagicMock()

        failing = AsyncMock(side_effect=ServerError.from_response(503))
        with caplog.at_level(logging.WARNING, logger="basalt._utils.fetch_policy"):
            outcome = await policy.fetch("key", failing, span=span)

        assert outcome.value == "old"
        assert outcome.cache_type == CacheType.FALLBACK
        assert annotations(span) == {
            BasaltSpanAttributes.CACHE_HIT: True,
            BasaltSpanAttributes.CACHE_TYPE: "fallback",
        }
        assert '"key"' in caplog.text

    @pytest.mark.asyncio
    async def test_failure_without_fallback_propagates_original(self, fake_clock):
        policy = make_policy(fake_clock)
        error = ConnectionError.from_exception(OSError("down"))
        span = MagicMock()

        with pytest.raises(ConnectionError) as exc_info:
            await policy.fetch("key", AsyncMock(side_effect=error), span=span)

        assert exc_info.value is error
        assert annotations(span)[BasaltSpanAttributes.CACHE_HIT] is False

    @pytest.mark.asyncio
    async def test_gated_fallback_requires_cache(self, fake_clock):
        """With gating on, a read with caching disabled never falls back."""
        policy = make_policy(fake_clock, fallback_requires_cache=True)
        policy.fallback_cache.set("key", "old")

        with pytest.raises(ServerError):
            await policy.fetch(
                "key",
                AsyncMock(side_effect=ServerError.from_response(500)),
                cache_enabled=False,
            )

    @pytest.mark.asyncio
    async def test_ungated_fallback_ignores_cache_flag(self, fake_clock):
        policy = make_policy(fake_clock, fallback_requires_cache=False)
        policy.fallback_cache.set("key", "old")

        outcome = await policy.fetch(
            "key",
            AsyncMock(side_effect=ServerError.from_response(500)),
            cache_enabled=False,
        )
        assert outcome.value == "old"

    @pytest.mark.asyncio
    async def test_non_transport_errors_are_not_masked(self, fake_clock):
        policy = make_policy(fake_clock)
        policy.fallback_cache.set("key", "old")

        with pytest.raises(KeyError):
            await policy.fetch("key", AsyncMock(side_effect=KeyError("bug")))
