"""Tests for token persistence and the refresh contract."""

from __future__ import annotations

import json
from datetime import datetime

import pytest

from drive_uploader.services.token_store import (
    FileTokenStore,
    InMemoryTokenStore,
    OAuthToken,
    ReauthenticationRequired,
)


def test_token_round_trips_through_dict():
    token = OAuthToken(
        access_token="a", refresh_token="r", scope="s", token_type="Bearer", expiry_date=1_700_000_000_000,
    )
    assert OAuthToken.from_dict(token.to_dict()) == token


def test_token_without_access_token_is_rejected():
    with pytest.raises(ValueError):
        OAuthToken.from_dict({"refresh_token": "r"})


def test_expiry_is_naive_utc():
    token = OAuthToken(access_token="a", expiry_date=0)
    assert token.expiry == datetime(1970, 1, 1)
    assert OAuthToken.expiry_to_millis(datetime(1970, 1, 1, 0, 0, 1)) == 1000
    assert OAuthToken(access_token="a").expiry is None


@pytest.mark.asyncio
async def test_file_store_missing_file_means_no_token(tmp_path):
    store = FileTokenStore(tmp_path / "token.json")
    assert await store.get() is None


@pytest.mark.asyncio
async def test_file_store_persists_and_reloads(tmp_path):
    path = tmp_path / "nested" / "token.json"
    token = OAuthToken(access_token="a", refresh_token="r", expiry_date=123)

    await FileTokenStore(path).persist(token)

    assert json.loads(path.read_text())["refresh_token"] == "r"
    assert not path.with_name("token.json.tmp").exists()
    assert await FileTokenStore(path).get() == token


@pytest.mark.asyncio
async def test_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "token.json"
    path.write_text("{not json")
    assert await FileTokenStore(path).load() is None


@pytest.mark.asyncio
async def test_refresh_keeps_previous_refresh_token():
    store = InMemoryTokenStore(OAuthToken(access_token="old", refresh_token="keep-me"))
    seen = []

    async def refresher(current):
        seen.append(current)
        return OAuthToken(access_token="new", refresh_token=None)

    refreshed = await store.refresh(refresher)

    assert seen[0].access_token == "old"
    assert refreshed.access_token == "new"
    assert refreshed.refresh_token == "keep-me"
    assert await store.get() == refreshed


@pytest.mark.asyncio
async def test_refresh_adopts_rotated_refresh_token():
    store = InMemoryTokenStore(OAuthToken(access_token="old", refresh_token="r1"))

    async def refresher(current):
        return OAuthToken(access_token="new", refresh_token="r2")

    assert (await store.refresh(refresher)).refresh_token == "r2"


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, OAuthToken(access_token="only-access")])
async def test_refresh_without_refresh_token_requires_reauth(token):
    store = InMemoryTokenStore(token)

    async def refresher(current):
        raise AssertionError("should not be called")

    with pytest.raises(ReauthenticationRequired):
        await store.refresh(refresher)
