"""Pricing cache metrics dataclass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PricingMetrics:
    live: int = 0
    cached: int = 0
    fallback: int = 0
    fetch_errors: int = 0
    last_error: str | None = None
    last_fetch_ts: float | None = None
