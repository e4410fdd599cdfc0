from __future__ import annotations

import logging

import pytest

from ltoc.config import Settings, parse_positive_int
from ltoc.errors import ConfigurationError

ENV_VARS = (
    "LTOC_ENV",
    "LTOC_RATE_LIMIT_WINDOW_MS",
    "LTOC_RATE_LIMIT_REQUESTS",
    "LTOC_RATE_LIMIT_SWEEP_INTERVAL_MS",
    "LTOC_APP_URL",
    "LTOC_CORS_ORIGINS",
    "LTOC_CSRF_EXCLUDED_PATHS",
    "LTOC_SUPABASE_URL",
    "LTOC_SUPABASE_ANON_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "LTOC_LOG_LEVEL",
    "LTOC_TRUSTED_PROXIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment():
    settings = Settings.from_env()

    assert settings.rate_limit_window_ms == 60_000
    assert settings.rate_limit_requests == 100
    assert settings.allowed_origins == ("http://localhost:3000", "https://ltoc.vercel.app")
    assert settings.csrf_excluded_paths == ("/api/webhooks", "/api/health")
    assert not settings.is_production
    assert not settings.database_configured
    assert not settings.ai_provider_configured
    assert settings.log_level == "INFO"
    assert settings.trusted_proxies == ()


def test_values_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("LTOC_ENV", "production")
    monkeypatch.setenv("LTOC_RATE_LIMIT_WINDOW_MS", "1000")
    monkeypatch.setenv("LTOC_RATE_LIMIT_REQUESTS", "5")
    monkeypatch.setenv("LTOC_APP_URL", "https://app.example")
    monkeypatch.setenv("LTOC_CORS_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("LTOC_SUPABASE_URL", "https://db.supabase.co/")
    monkeypatch.setenv("LTOC_SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setenv("LTOC_LOG_LEVEL", "debug")
    monkeypatch.setenv("LTOC_TRUSTED_PROXIES", "10.0.0.2, 10.0.0.3")

    settings = Settings.from_env()

    assert settings.is_production
    assert settings.rate_limit_window_ms == 1000
    assert settings.rate_limit_requests == 5
    assert settings.allowed_origins == ("https://app.example", "https://a.example", "https://b.example")
    assert settings.supabase_url == "https://db.supabase.co"
    assert settings.database_configured
    assert settings.ai_provider_configured
    assert settings.log_level == "DEBUG"
    assert settings.trusted_proxies == ("10.0.0.2", "10.0.0.3")


@pytest.mark.parametrize("raw", ["sixty", "0", "-5", "1.5"])
def test_unparsable_numbers_fall_back_to_defaults(monkeypatch, caplog, raw):
    monkeypatch.setenv("LTOC_RATE_LIMIT_REQUESTS", raw)

    with caplog.at_level(logging.WARNING, logger="ltoc.config"):
        settings = Settings.from_env()

    assert settings.rate_limit_requests == 100
    assert "invalid setting" in caplog.text


@pytest.mark.parametrize("raw", ["verbose", "loud", "5"])
def test_unknown_log_level_falls_back_to_info(monkeypatch, caplog, raw):
    monkeypatch.setenv("LTOC_LOG_LEVEL", raw)

    with caplog.at_level(logging.WARNING, logger="ltoc.config"):
        settings = Settings.from_env()

    assert settings.log_level == "INFO"
    assert "invalid setting" in caplog.text


def test_parse_positive_int_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        parse_positive_int("abc", "LTOC_RATE_LIMIT_REQUESTS")
    assert parse_positive_int(" 42 ", "X") == 42
