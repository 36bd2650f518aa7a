"""Tests for FileRecord persistence."""

from __future__ import annotations

import pytest


async def _insert(store, name: str, drive_id: str):
    return await store.insert(
        name=name,
        mime_type="application/pdf",
        size=42,
        drive_file_id=drive_id,
        drive_url=f"https://drive.google.com/file/d/{drive_id}/view",
    )


@pytest.mark.asyncio
async def test_insert_assigns_id_and_timestamps(file_store):
    record = await _insert(file_store, "a.pdf", "d1")

    assert record.id is not None
    assert record.created_at is not None
    assert record.updated_at is not None
    assert record.size == 42


@pytest.mark.asyncio
async def test_list_all_is_newest_first(file_store):
    first = await _insert(file_store, "first.pdf", "d1")
    second = await _insert(file_store, "second.pdf", "d2")
    third = await _insert(file_store, "third.pdf", "d3")

    listed = await file_store.list_all()

    assert [r.id for r in listed] == [third.id, second.id, first.id]


@pytest.mark.asyncio
async def test_listing_has_no_side_effects(file_store):
    await _insert(file_store, "a.pdf", "d1")

    once = [(r.id, r.name) for r in await file_store.list_all()]
    twice = [(r.id, r.name) for r in await file_store.list_all()]

    assert once == twice == [(1, "a.pdf")]


@pytest.mark.asyncio
async def test_empty_listing(file_store):
    assert await file_store.list_all() == []
