import logging
import os
from unittest import mock

from fairfence_pricing import config

from conftest import make_settings


def test_settings_defaults():
    with mock.patch.dict(os.environ, {}, clear=True):
        settings = config._read_settings()
        assert settings.SUPABASE_URL is None
        assert settings.SUPABASE_ANON_KEY is None
        assert settings.PRICING_SOURCE == "edge"
        assert settings.PORT == 5000


def test_settings_custom():
    env = {
        "SUPABASE_URL": "https://x.supabase.co",
        "SUPABASE_ANON_KEY": "anon",
        "PRICING_SOURCE": "Database",
        "PORT": "8080",
    }
    with mock.patch.dict(os.environ, env, clear=True):
        settings = config._read_settings()
        assert settings.SUPABASE_URL == "https://x.supabase.co"
        assert settings.SUPABASE_ANON_KEY == "anon"
        assert settings.PRICING_SOURCE == "database"
        assert settings.PORT == 8080


def test_settings_invalid_values_fall_back():
    with mock.patch.dict(os.environ, {"PORT": "abc", "PRICING_SOURCE": "ftp"}, clear=True):
        settings = config._read_settings()
        assert settings.PORT == 5000
        assert settings.PRICING_SOURCE == "edge"


def test_validate_settings_logs_missing_credentials(caplog):
    with caplog.at_level(logging.WARNING, logger="fairfence_pricing.config"):
        config.validate_settings(make_settings(SUPABASE_URL=None))
    assert "SUPABASE_URL" in caplog.text
