"""Central configuration for fairfence_pricing."""

from __future__ import annotations

import logging
import os

from .models.settings import Settings

logger = logging.getLogger(__name__)

PRICING_SOURCES = {"edge", "database"}


def _read_settings() -> Settings:
    """Read all configuration from environment variables.

    Returns:
        Settings object with all configuration values.

    Note:
        Invalid numeric values fall back to sensible defaults. An unknown
        PRICING_SOURCE falls back to "edge".
    """
    supabase_url = (os.environ.get("SUPABASE_URL") or "").strip() or None
    anon_key = (os.environ.get("SUPABASE_ANON_KEY") or "").strip() or None
    service_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip() or None

    source = (os.environ.get("PRICING_SOURCE") or "edge").strip().lower()
    if source not in PRICING_SOURCES:
        source = "edge"

    host = os.environ.get("HOST") or "0.0.0.0"
    port_raw = (os.environ.get("PORT") or "5000").strip()
    try:
        port = int(port_raw) if port_raw else 5000
    except Exception:
        port = 5000

    return Settings(
        SUPABASE_URL=supabase_url,
        SUPABASE_ANON_KEY=anon_key,
        SUPABASE_SERVICE_ROLE_KEY=service_key,
        PRICING_SOURCE=source,
        HOST=host,
        PORT=port,
    )


settings = _read_settings()


def validate_settings(current: Settings | None = None) -> None:
    """Log warnings for missing Supabase credentials.

    Missing values are not fatal here: pricing falls back to the built-in
    dataset and the edge client raises ConfigurationError when built.
    """
    current = current or settings
    if current.SUPABASE_URL is None:
        logger.error("SUPABASE_URL environment variable is not set")
    if current.SUPABASE_ANON_KEY is None:
        logger.error("SUPABASE_ANON_KEY environment variable is not set")
    if current.PRICING_SOURCE == "database" and current.SUPABASE_SERVICE_ROLE_KEY is None:
        logger.warning(
            "SUPABASE_SERVICE_ROLE_KEY is not set; pricing reads use the anon key."
        )
