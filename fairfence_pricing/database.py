"""Direct reads of the Supabase ``pricing`` table over PostgREST."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from .models.pricing import PricingRow
from .models.settings import DatabaseConfig

logger = logging.getLogger(__name__)

PRICING_COLUMNS = "id,servicetype,name,height,totallmincgst,code,created_at"
_TIMEOUT = 12


def _fetch(
    config: DatabaseConfig, table: str, params: dict[str, Any]
) -> list[PricingRow]:
    url = f"{config.rest_url}/{table}"
    headers = {
        "apikey": config.api_key,
        "Authorization": f"Bearer {config.api_key}",
        "Accept": "application/json",
    }
    resp = requests.get(url, params=params, headers=headers, timeout=_TIMEOUT)
    if not resp.ok:
        snippet = resp.text[:500].replace("\n", " ")
        raise RuntimeError(f"Supabase HTTP {resp.status_code}: {snippet}")
    data = resp.json()
    if not isinstance(data, list):
        raise RuntimeError("Supabase returned an unexpected payload")
    return data


def fetch_all_pricing_sync(config: DatabaseConfig) -> list[PricingRow]:
    return _fetch(
        config,
        "pricing",
        {"select": PRICING_COLUMNS, "order": "servicetype.asc,height.asc"},
    )


def fetch_pricing_by_type_sync(config: DatabaseConfig, fence_type: str) -> list[PricingRow]:
    """Rows whose ``servicetype`` contains ``fence_type`` (case-insensitive)."""
    # PostgREST reserves these characters inside filter values
    cleaned = "".join(ch for ch in fence_type if ch not in "*,()%").strip()
    return _fetch(
        config,
        "pricing",
        {
            "select": "id,servicetype,name,height,totallmincgst,code",
            "servicetype": f"ilike.*{cleaned}*",
        },
    )


async def fetch_all_pricing(config: DatabaseConfig) -> list[PricingRow]:
    rows = await asyncio.to_thread(fetch_all_pricing_sync, config)
    logger.debug("Fetched %d pricing rows from database", len(rows))
    return rows


async def fetch_pricing_by_type(config: DatabaseConfig, fence_type: str) -> list[PricingRow]:
    return await asyncio.to_thread(fetch_pricing_by_type_sync, config, fence_type)
