"""Cache-related dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """Cached pricing payload with the monotonic time it was stored."""

    fetched_at: float
    value: dict[str, Any]
