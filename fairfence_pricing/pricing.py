"""Fence pricing: fallback dataset, row transformation and the TTL cache."""

from __future__ import annotations

import copy
import logging
import math
import re
import time
from typing import Any, Awaitable, Callable, Iterable

from . import database
from .edge_functions import EdgeFunctionClient
from .errors import ConfigurationError, PricingFetchError
from .models.cache import CacheEntry
from .models.metrics import PricingMetrics
from .models.pricing import PricingResult, PricingRow, Provenance
from .models.settings import DatabaseConfig

__all__ = [
    "CACHE_TTL_S",
    "FALLBACK_PRICING",
    "PricingCache",
    "PricingSource",
    "build_payload",
    "category_key",
    "database_pricing_source",
    "edge_pricing_source",
    "fallback_payload",
    "transform_rows",
    "unavailable_source",
]

logger = logging.getLogger(__name__)

CACHE_TTL_S = 5 * 60

PricingSource = Callable[[], Awaitable[list[PricingRow]]]

FALLBACK_PRICING: dict[str, dict[str, Any]] = {
    "timber": {
        "1.2": 150,
        "1.5": 165,
        "1.8": 180,
        "2.1": 210,
        "perMeter": True,
        "description": "Quality timber fencing",
        "materials": "H4 treated pine posts, H3.2 treated palings",
    },
    "aluminum": {
        "1.2": 190,
        "1.5": 205,
        "1.8": 220,
        "2.1": 260,
        "perMeter": True,
        "description": "Modern aluminum fencing",
        "materials": "Powder-coated aluminum, stainless steel fixings",
    },
    "pvc": {
        "1.2": 210,
        "1.5": 230,
        "1.8": 250,
        "2.1": 290,
        "perMeter": True,
        "description": "Low-maintenance PVC/Vinyl fencing",
        "materials": "UV-stabilized PVC, aluminum reinforced posts",
    },
    "rural": {
        "1.2": 100,
        "1.5": 110,
        "1.8": 120,
        "2.1": 140,
        "perMeter": True,
        "description": "Rural and lifestyle fencing",
        "materials": "H5 treated posts, H3.2 rails, 2.5mm HT wire",
    },
}

# Checked in order; the first matching keyword wins.
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("timber", ("timber",)),
    ("aluminum", ("aluminium", "aluminum")),
    ("pvc", ("pvc", "vinyl")),
    ("rural", ("rural",)),
)
_DEFAULT_CATEGORY = "timber"
_DESCRIPTIVE_FIELDS = ("description", "materials")


def category_key(service_type: str | None) -> str:
    """Map free-text ``servicetype`` to a pricing category key.

    Example:
        >>> category_key("Aluminium Fence")
        'aluminum'
        >>> category_key("Pool Fence")
        'timber'
    """
    text = (service_type or "").lower()
    for key, keywords in _CATEGORY_KEYWORDS:
        if any(word in text for word in keywords):
            return key
    return _DEFAULT_CATEGORY


def _number(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


def _height_key(height: Any) -> str:
    if isinstance(height, bool):
        return str(height)
    if isinstance(height, (int, float)):
        return str(_number(height))
    return str(height).strip()


# Leading decimal number, so "1,234" reads as 1 and "180 incl" as 180.
_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _parse_price(raw: Any) -> float | int:
    if isinstance(raw, bool) or raw is None:
        return 0
    if isinstance(raw, (int, float)):
        return _number(raw) if math.isfinite(raw) else 0
    match = _LEADING_NUMBER.match(str(raw))
    if match is None:
        return 0
    return _number(float(match.group(1)))


def transform_rows(rows: Iterable[PricingRow]) -> dict[str, dict[str, Any]]:
    """Group raw pricing rows into ``{category: {height: price, ...}}``."""
    out: dict[str, dict[str, Any]] = {}
    for row in rows:
        key = category_key(row.get("servicetype"))
        bucket = out.setdefault(key, {"perMeter": True})
        bucket[_height_key(row.get("height"))] = _parse_price(row.get("totallmincgst"))

    for key, bucket in out.items():
        defaults = FALLBACK_PRICING.get(key, {})
        for field_name in _DESCRIPTIVE_FIELDS:
            if field_name in defaults:
                bucket.setdefault(field_name, defaults[field_name])
    return out


def build_payload(rows: list[PricingRow]) -> dict[str, Any]:
    """Response payload for a successful fetch.

    An empty table still counts as a successful fetch, but reports
    ``fallback: true`` and carries the built-in prices.
    """
    has_data = bool(rows)
    return {
        "tables": [{"table_name": "pricing", "table_schema": "public"}],
        "data": {"pricing": list(rows)},
        "fallback": not has_data,
        "pricing": transform_rows(rows) if has_data else copy.deepcopy(FALLBACK_PRICING),
    }


def fallback_payload() -> dict[str, Any]:
    return {
        "tables": [],
        "data": {},
        "fallback": True,
        "pricing": copy.deepcopy(FALLBACK_PRICING),
    }


class PricingCache:
    """Single-slot pricing cache with a fixed freshness window.

    Fresh entries are served without touching the source. After expiry the
    source is fetched again; if that fails the built-in dataset is returned
    and the old entry is left as it was. ``get_pricing`` never raises.
    """

    def __init__(
        self,
        fetch: PricingSource,
        ttl_s: float = CACHE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch = fetch
        self.ttl_s = ttl_s
        self._clock = clock
        self.entry: CacheEntry | None = None
        self.metrics = PricingMetrics()

    def age_s(self) -> float | None:
        if self.entry is None:
            return None
        return self._clock() - self.entry.fetched_at

    def is_fresh(self) -> bool:
        age = self.age_s()
        return age is not None and age < self.ttl_s

    async def get_pricing(self) -> PricingResult:
        entry = self.entry
        if entry is not None and (self._clock() - entry.fetched_at) < self.ttl_s:
            self.metrics.cached += 1
            logger.debug("Serving pricing from cache")
            return PricingResult(Provenance.CACHED, copy.deepcopy(entry.value))

        # Concurrent misses are not coalesced: each caller runs its own fetch
        # and the last one to finish owns the slot. Sharing one in-flight task
        # would stop the herd.
        logger.info("Fetching fresh pricing")
        try:
            rows = await self._fetch()
            payload = build_payload(rows)
        except Exception as e:
            self.metrics.fallback += 1
            self.metrics.fetch_errors += 1
            self.metrics.last_error = str(e)
            logger.warning("Pricing fetch failed, serving fallback pricing: %s", e)
            return PricingResult(Provenance.FALLBACK, fallback_payload())

        self.entry = CacheEntry(fetched_at=self._clock(), value=payload)
        self.metrics.live += 1
        self.metrics.last_fetch_ts = time.time()
        logger.info("Cached %d pricing rows", len(payload["data"]["pricing"]))
        return PricingResult(Provenance.LIVE, copy.deepcopy(payload))

    def stats(self) -> dict[str, Any]:
        age = self.age_s()
        return {
            "ttl_s": self.ttl_s,
            "has_entry": self.entry is not None,
            "fresh": self.is_fresh(),
            "age_s": round(age, 1) if age is not None else None,
            "live": self.metrics.live,
            "cached": self.metrics.cached,
            "fallback": self.metrics.fallback,
            "fetch_errors": self.metrics.fetch_errors,
            "last_error": self.metrics.last_error,
        }


def edge_pricing_source(client: EdgeFunctionClient) -> PricingSource:
    """Pricing rows from the ``get-pricing`` Edge Function.

    The function answers with its own fallback when its database read fails;
    that is treated as a fetch failure so the local policy decides.
    """

    async def fetch() -> list[PricingRow]:
        resp = await client.get_pricing()
        data = resp.get("data") if isinstance(resp, dict) else None
        if not isinstance(data, dict) or resp.get("success") is False:
            raise PricingFetchError("get-pricing returned an unexpected payload")
        if data.get("fallback"):
            source = data.get("source") or "unknown"
            if source == "fallback-no-data":
                return []
            raise PricingFetchError(f"get-pricing served fallback data ({source})")
        rows = (data.get("data") or {}).get("pricing")
        if not isinstance(rows, list):
            raise PricingFetchError("get-pricing response has no pricing rows")
        return rows

    return fetch


def database_pricing_source(config: DatabaseConfig) -> PricingSource:
    async def fetch() -> list[PricingRow]:
        return await database.fetch_all_pricing(config)

    return fetch


def unavailable_source(reason: str) -> PricingSource:
    """Source for a process started without Supabase credentials."""

    async def fetch() -> list[PricingRow]:
        raise ConfigurationError(reason)

    return fetch
