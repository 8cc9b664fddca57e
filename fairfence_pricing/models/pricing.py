"""Pricing rows and provenance-tagged results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypedDict


class PricingRow(TypedDict, total=False):
    """Row of the ``pricing`` table."""

    id: str
    servicetype: str
    name: str
    height: float
    totallmincgst: str
    code: str
    created_at: str


class Provenance(str, Enum):
    LIVE = "live"
    CACHED = "cached"
    FALLBACK = "fallback"


@dataclass
class PricingResult:
    """Pricing payload plus how it was obtained."""

    provenance: Provenance
    payload: dict[str, Any]

    @property
    def cached(self) -> bool:
        return self.provenance is Provenance.CACHED

    @property
    def fallback(self) -> bool:
        return bool(self.payload.get("fallback"))

    @property
    def pricing(self) -> dict[str, Any]:
        return self.payload.get("pricing", {})

    def to_response(self) -> dict[str, Any]:
        return {"success": True, "data": self.payload, "cached": self.cached}
