from ltoc.cache import TTLCache
from ltoc.utils import (
    client_identifier,
    is_api_path,
    is_static_asset,
    isoformat_ms,
    retry_after_seconds,
)


def test_isoformat_ms_renders_utc_with_milliseconds():
    assert isoformat_ms(0) == "1970-01-01T00:00:00.000Z"
    assert isoformat_ms(1_700_000_000_123) == "2023-11-14T22:13:20.123Z"


def test_retry_after_rounds_up():
    assert retry_after_seconds(60_000, 20_000) == 40
    assert retry_after_seconds(60_000, 59_999) == 1
    assert retry_after_seconds(60_000, 60_000) == 0


def test_client_identifier_uses_forwarded_header_from_trusted_proxy():
    headers = {"x-forwarded-for": " 203.0.113.7 , 10.0.0.1"}
    assert client_identifier(headers, "10.0.0.2", ("10.0.0.2",)) == "203.0.113.7"


def test_client_identifier_ignores_forwarded_header_from_untrusted_peer():
    headers = {"x-forwarded-for": "203.0.113.7"}
    assert client_identifier(headers, "198.51.100.9") == "198.51.100.9"
    assert client_identifier(headers, "198.51.100.9", ("10.0.0.2",)) == "198.51.100.9"
    assert client_identifier(headers, None, ("10.0.0.2",)) == "unknown"


def test_client_identifier_falls_back_to_connection_then_unknown():
    assert client_identifier({}, "127.0.0.1") == "127.0.0.1"
    assert client_identifier({"x-forwarded-for": ""}, "10.0.0.2", ("10.0.0.2",)) == "10.0.0.2"
    assert client_identifier({"x-forwarded-for": ""}, None) == "unknown"


def test_static_asset_detection():
    assert is_static_asset("/favicon.ico")
    assert is_static_asset("/static/app.js")
    assert is_static_asset("/_internal/build")
    assert not is_static_asset("/api/content")


def test_api_path_detection():
    assert is_api_path("/api/content")
    assert not is_api_path("/api")
    assert not is_api_path("/dashboard")


def test_ttl_cache_expires_with_clock():
    now = [0.0]
    cache = TTLCache(10, clock=lambda: now[0])
    cache.set("foo", "bar")
    assert cache.get("foo") == "bar"
    now[0] = 10.0
    assert cache.get("foo") is None
