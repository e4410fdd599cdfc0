from __future__ import annotations

from unittest import mock

import pytest
import requests

from ltoc.clients.database import DatabaseHealthClient, DatabaseHealthError
from ltoc.config import Settings


def make_client(**overrides) -> tuple[DatabaseHealthClient, mock.Mock]:
    settings = Settings(
        supabase_url="https://db.example.supabase.co",
        supabase_anon_key="anon-key",
        **overrides,
    )
    session = requests.Session()
    session.post = mock.Mock()  # type: ignore[method-assign]
    return DatabaseHealthClient(settings, session=session), session.post


def fake_response(status: int, text: str = "") -> mock.Mock:
    response = mock.Mock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.text = text
    return response


def test_unconfigured_database_reports_unknown():
    client = DatabaseHealthClient(Settings())

    assert not client.configured
    assert client.check() == "unknown"


def test_health_rpc_is_called_with_anon_key():
    client, post = make_client()
    post.return_value = fake_response(200, "true")

    assert client.check() == "healthy"

    post.assert_called_once_with(
        "https://db.example.supabase.co/rest/v1/rpc/get_database_health", json={}, timeout=5
    )
    assert client._session.headers["apikey"] == "anon-key"
    assert client._session.headers["Authorization"] == "Bearer anon-key"


def test_health_result_is_cached():
    client, post = make_client()
    post.return_value = fake_response(200)

    client.check()
    client.check()

    assert post.call_count == 1


def test_error_status_reports_unhealthy():
    client, post = make_client()
    post.return_value = fake_response(500, "internal")

    assert client.check() == "unhealthy"


def test_ping_raises_descriptive_error_on_unauthorized():
    client, post = make_client()
    post.return_value = fake_response(401, "bad key")

    with pytest.raises(DatabaseHealthError, match="LTOC_SUPABASE_ANON_KEY"):
        client.ping()


def test_transport_failure_reports_unhealthy():
    client, post = make_client()
    post.side_effect = requests.ConnectionError("refused")

    assert client.check() == "unhealthy"
    with pytest.raises(DatabaseHealthError, match="unreachable"):
        client.ping()
