"""Tests for the pricing cache and row transformation."""

import asyncio

import pytest

from fairfence_pricing import pricing
from fairfence_pricing.errors import ConfigurationError, EdgeFunctionError, ErrorKind
from fairfence_pricing.models.pricing import Provenance

from conftest import FakeClock, ScriptedHandler, make_client

ROWS = [
    {"servicetype": "Timber Slat Fence", "height": 1.2, "totallmincgst": "155.50"},
    {"servicetype": "Aluminium Fence", "height": 1.8, "totallmincgst": "231"},
    {"servicetype": "PVC/Vinyl Fence", "height": 2.1, "totallmincgst": "300"},
    {"servicetype": "Rural Fencing", "height": 1.5, "totallmincgst": "115"},
]


class CountingSource:
    def __init__(self, rows=None, fail: bool = False, delay: float = 0.0) -> None:
        self.rows = ROWS if rows is None else rows
        self.fail = fail
        self.delay = delay
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("database unavailable")
        return list(self.rows)


def test_category_key_mapping() -> None:
    assert pricing.category_key("Timber Fence") == "timber"
    assert pricing.category_key("ALUMINUM pool fence") == "aluminum"
    assert pricing.category_key("Aluminium Fence") == "aluminum"
    assert pricing.category_key("Vinyl Fence") == "pvc"
    assert pricing.category_key("pvc") == "pvc"
    assert pricing.category_key("Rural Fencing") == "rural"
    assert pricing.category_key("Pool Fence") == "timber"
    assert pricing.category_key(None) == "timber"


def test_transform_rows_groups_by_category_and_height() -> None:
    out = pricing.transform_rows(
        [
            {"servicetype": "Aluminium Fence", "height": 1.8, "totallmincgst": "220.5"},
            {"servicetype": "Garden Screen", "height": 1.5, "totallmincgst": "99"},
            {"servicetype": "Timber Fence", "height": 2, "totallmincgst": "bad"},
        ]
    )
    assert out["aluminum"]["1.8"] == 220.5
    assert out["aluminum"]["perMeter"] is True
    assert out["aluminum"]["description"] == "Modern aluminum fencing"
    assert out["timber"]["1.5"] == 99
    assert out["timber"]["2"] == 0
    assert out["timber"]["materials"].startswith("H4 treated pine")
    assert "pvc" not in out


def test_prices_read_the_leading_number() -> None:
    assert pricing._parse_price("180abc") == 180
    assert pricing._parse_price("1,234") == 1
    assert pricing._parse_price("  155.50 incl GST") == 155.5
    assert pricing._parse_price(".5") == 0.5
    assert pricing._parse_price("2e2") == 200
    assert pricing._parse_price(231) == 231
    assert pricing._parse_price("bad") == 0
    assert pricing._parse_price("") == 0
    assert pricing._parse_price(None) == 0


def test_build_payload_for_empty_rows_uses_fallback_prices() -> None:
    payload = pricing.build_payload([])
    assert payload["fallback"] is True
    assert payload["pricing"] == pricing.FALLBACK_PRICING
    assert payload["tables"] == [{"table_name": "pricing", "table_schema": "public"}]


def test_fallback_payload_is_a_copy() -> None:
    payload = pricing.fallback_payload()
    payload["pricing"]["timber"]["1.2"] = 1
    assert pricing.FALLBACK_PRICING["timber"]["1.2"] == 150


@pytest.mark.asyncio
async def test_second_call_within_ttl_is_cached() -> None:
    source = CountingSource()
    cache = pricing.PricingCache(source, clock=FakeClock())

    first = await cache.get_pricing()
    second = await cache.get_pricing()

    assert source.calls == 1
    assert first.provenance is Provenance.LIVE
    assert second.provenance is Provenance.CACHED
    assert second.cached is True
    assert second.pricing["aluminum"]["1.8"] == 231
    assert first.to_response()["cached"] is False
    assert second.to_response()["cached"] is True


@pytest.mark.asyncio
async def test_expired_entry_triggers_one_refetch() -> None:
    source = CountingSource()
    clock = FakeClock()
    cache = pricing.PricingCache(source, clock=clock)

    await cache.get_pricing()
    clock.advance(pricing.CACHE_TTL_S - 1)
    assert (await cache.get_pricing()).provenance is Provenance.CACHED
    clock.advance(1)
    result = await cache.get_pricing()

    assert source.calls == 2
    assert result.provenance is Provenance.LIVE


@pytest.mark.asyncio
async def test_concurrent_misses_each_fetch() -> None:
    source = CountingSource(delay=0.01)
    cache = pricing.PricingCache(source, clock=FakeClock())

    results = await asyncio.gather(*(cache.get_pricing() for _ in range(3)))

    assert source.calls == 3
    assert [r.provenance for r in results] == [Provenance.LIVE] * 3
    assert cache.entry is not None
    assert cache.metrics.live == 3


@pytest.mark.asyncio
async def test_mutating_a_result_leaves_the_cache_intact() -> None:
    cache = pricing.PricingCache(CountingSource(), clock=FakeClock())

    live = await cache.get_pricing()
    live.pricing["aluminum"]["1.8"] = 1
    cached = await cache.get_pricing()
    cached.pricing["aluminum"]["1.8"] = 2
    cached.payload["data"]["pricing"].clear()
    again = await cache.get_pricing()

    assert again.provenance is Provenance.CACHED
    assert again.pricing["aluminum"]["1.8"] == 231
    assert len(again.payload["data"]["pricing"]) == len(ROWS)


@pytest.mark.asyncio
async def test_total_failure_returns_fallback() -> None:
    source = CountingSource(fail=True)
    cache = pricing.PricingCache(source, clock=FakeClock())

    result = await cache.get_pricing()

    assert result.provenance is Provenance.FALLBACK
    assert result.fallback is True
    assert set(result.pricing) == {"timber", "aluminum", "pvc", "rural"}
    assert result.pricing["rural"]["2.1"] == 140
    assert cache.entry is None
    assert cache.metrics.fetch_errors == 1
    assert cache.metrics.last_error == "database unavailable"


@pytest.mark.asyncio
async def test_failed_refresh_keeps_stale_entry_and_recovers() -> None:
    source = CountingSource()
    clock = FakeClock()
    cache = pricing.PricingCache(source, clock=clock)

    await cache.get_pricing()
    stale = cache.entry
    clock.advance(pricing.CACHE_TTL_S + 1)
    source.fail = True

    result = await cache.get_pricing()
    assert result.provenance is Provenance.FALLBACK
    assert cache.entry is stale

    source.fail = False
    result = await cache.get_pricing()
    assert result.provenance is Provenance.LIVE
    assert cache.entry is not stale
    assert cache.entry.fetched_at == clock.now
    assert source.calls == 3


@pytest.mark.asyncio
async def test_empty_table_is_cached_with_fallback_flag() -> None:
    source = CountingSource(rows=[])
    cache = pricing.PricingCache(source, clock=FakeClock())

    first = await cache.get_pricing()
    second = await cache.get_pricing()

    assert first.provenance is Provenance.LIVE
    assert first.fallback is True
    assert second.provenance is Provenance.CACHED
    assert source.calls == 1


@pytest.mark.asyncio
async def test_stats_reports_counters() -> None:
    clock = FakeClock()
    cache = pricing.PricingCache(CountingSource(), clock=clock)
    await cache.get_pricing()
    await cache.get_pricing()
    clock.advance(30)

    stats = cache.stats()
    assert stats["live"] == 1
    assert stats["cached"] == 1
    assert stats["fresh"] is True
    assert stats["age_s"] == 30.0


@pytest.mark.asyncio
async def test_edge_source_extracts_rows() -> None:
    body = {"success": True, "data": {"fallback": False, "data": {"pricing": ROWS}}}
    client = make_client(ScriptedHandler([body]))

    rows = await pricing.edge_pricing_source(client)()

    assert rows == ROWS


@pytest.mark.asyncio
async def test_edge_source_treats_remote_fallback_as_failure() -> None:
    body = {"success": True, "data": {"fallback": True, "source": "fallback-db-error"}}
    client = make_client(ScriptedHandler([body]))
    cache = pricing.PricingCache(pricing.edge_pricing_source(client), clock=FakeClock())

    result = await cache.get_pricing()

    assert result.provenance is Provenance.FALLBACK
    assert "fallback-db-error" in cache.metrics.last_error


@pytest.mark.asyncio
async def test_edge_source_empty_table_returns_no_rows() -> None:
    body = {"success": True, "data": {"fallback": True, "source": "fallback-no-data"}}
    client = make_client(ScriptedHandler([body]))

    assert await pricing.edge_pricing_source(client)() == []


@pytest.mark.asyncio
async def test_edge_source_propagates_client_errors() -> None:
    client = make_client(ScriptedHandler([401]))
    with pytest.raises(EdgeFunctionError) as excinfo:
        await pricing.edge_pricing_source(client)()
    assert excinfo.value.kind is ErrorKind.HTTP


@pytest.mark.asyncio
async def test_unavailable_source_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="missing"):
        await pricing.unavailable_source("config missing")()
