"""Configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ConfigurationError

_URL_SCHEMES = ("http://", "https://")


def _checked_base_url(raw: str | None, purpose: str) -> str:
    base_url = (raw or "").strip().rstrip("/")
    if base_url and not base_url.lower().startswith(_URL_SCHEMES):
        raise ConfigurationError(
            f"SUPABASE_URL must start with http:// or https:// for {purpose}: {base_url!r}"
        )
    return base_url


@dataclass
class Settings:
    """Configuration settings for fairfence_pricing."""

    SUPABASE_URL: str | None
    SUPABASE_ANON_KEY: str | None
    SUPABASE_SERVICE_ROLE_KEY: str | None
    PRICING_SOURCE: str
    HOST: str
    PORT: int


@dataclass(frozen=True)
class EdgeFunctionConfig:
    """Base address and bearer token for Supabase Edge Function calls.

    Built once at start-up and handed to the client, so the environment is
    never re-read per call.
    """

    base_url: str
    token: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "EdgeFunctionConfig":
        base_url = _checked_base_url(settings.SUPABASE_URL, "Edge Function client")
        token = settings.SUPABASE_ANON_KEY or ""
        if not base_url or not token:
            raise ConfigurationError(
                "Supabase configuration missing for Edge Function client"
            )
        return cls(base_url=base_url, token=token)


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgREST endpoint and key used for direct table reads."""

    rest_url: str
    api_key: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        base_url = _checked_base_url(settings.SUPABASE_URL, "database reads")
        # Service role bypasses RLS for the pricing table.
        api_key = settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_ANON_KEY
        if not base_url or not api_key:
            raise ConfigurationError("Supabase configuration missing for database reads")
        return cls(rest_url=f"{base_url}/rest/v1", api_key=api_key)
