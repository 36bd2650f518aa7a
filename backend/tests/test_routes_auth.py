"""HTTP tests for the OAuth pages."""

from __future__ import annotations

import pytest

from drive_uploader.dependencies import get_auth_service
from drive_uploader.main import app
from drive_uploader.services.google_auth import GoogleAuthService
from drive_uploader.services.token_store import InMemoryTokenStore, OAuthToken


class StubExchange:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.codes: list[str] = []

    async def __call__(self, code: str):
        self.codes.append(code)
        if self.error:
            raise self.error
        return OAuthToken(access_token="new-access", refresh_token="new-refresh")


@pytest.mark.asyncio
async def test_home_page_links_to_consent(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert 'href="/auth/google"' in resp.text


@pytest.mark.asyncio
async def test_auth_redirects_to_google(client):
    resp = await client.get("/auth/google")

    assert resp.status_code == 307
    location = resp.headers["location"]
    assert location.startswith("https://accounts.google.com/o/oauth2/auth?")
    assert "access_type=offline" in location
    assert "prompt=consent" in location


@pytest.mark.asyncio
async def test_auth_without_client_config_is_500(client):
    app.dependency_overrides[get_auth_service] = lambda: GoogleAuthService(
        token_store=InMemoryTokenStore(), client_config=None,
    )

    resp = await client.get("/auth/google")

    assert resp.status_code == 500
    assert "GOOGLE_CLIENT_ID" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_callback_without_code_is_400(client):
    resp = await client.get("/auth/google/callback")
    assert resp.status_code == 400
    assert resp.text == "No authorization code provided"


@pytest.mark.asyncio
async def test_callback_exchanges_code(client, auth_service):
    exchange = StubExchange()
    auth_service.exchange_code = exchange

    resp = await client.get("/auth/google/callback", params={"code": "4/abc"})

    assert resp.status_code == 200
    assert "Authentication Successful!" in resp.text
    assert exchange.codes == ["4/abc"]


@pytest.mark.asyncio
async def test_callback_failure_renders_escaped_error(client, auth_service):
    auth_service.exchange_code = StubExchange(error=ValueError("invalid_grant <script>"))

    resp = await client.get("/auth/google/callback", params={"code": "bad"})

    assert resp.status_code == 500
    assert "Authentication Failed" in resp.text
    assert "invalid_grant &lt;script&gt;" in resp.text
    assert "<script>" not in resp.text
