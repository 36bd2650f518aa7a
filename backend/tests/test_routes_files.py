"""HTTP tests for /files."""

from __future__ import annotations

import pytest

from drive_uploader.services.downloader import DownloadError


@pytest.mark.asyncio
async def test_upload_returns_created_records(client, storage):
    resp = await client.post("/files/upload", json={"fileUrls": ["https://example.com/report.pdf"]})

    assert resp.status_code == 201
    body = resp.json()
    assert len(body) == 1
    record = body[0]
    assert record["name"] == "report.pdf"
    assert record["mimeType"] == "application/pdf"
    assert record["size"] == len(b"file-bytes")
    assert record["driveFileId"] == "drive-1"
    assert record["driveUrl"] == "https://drive.google.com/file/d/drive-1/view"
    assert "createdAt" in record and "updatedAt" in record
    assert len(storage.uploads) == 1


@pytest.mark.asyncio
async def test_upload_then_list(client):
    await client.post("/files/upload", json={"fileUrls": ["https://example.com/a.pdf"]})
    await client.post("/files/upload", json={"fileUrls": ["https://example.com/b.png"]})

    resp = await client.get("/files")

    assert resp.status_code == 200
    assert [f["name"] for f in resp.json()] == ["b.png", "a.pdf"]


@pytest.mark.asyncio
async def test_list_empty(client):
    resp = await client.get("/files")
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_empty_batch_is_rejected(client, downloader):
    resp = await client.post("/files/upload", json={"fileUrls": []})

    assert resp.status_code == 400
    assert resp.json()["details"][0]["reason"] == "empty"
    assert downloader.calls == []


@pytest.mark.asyncio
async def test_missing_field_is_an_empty_batch(client):
    resp = await client.post("/files/upload", json={})
    assert resp.status_code == 400
    assert resp.json()["details"][0]["reason"] == "empty"


@pytest.mark.asyncio
async def test_too_many_urls_rejected(client, downloader):
    urls = [f"https://example.com/f{i}.pdf" for i in range(11)]

    resp = await client.post("/files/upload", json={"fileUrls": urls})

    assert resp.status_code == 400
    assert resp.json()["details"][0]["reason"] == "too_many"
    assert downloader.calls == []


@pytest.mark.asyncio
async def test_one_bad_url_rejects_whole_batch(client, downloader, file_store):
    resp = await client.post("/files/upload", json={"fileUrls": [
        "https://example.com/fine.pdf",
        "https://example.com/payload.exe",
        "ftp://example.com/x.pdf",
    ]})

    assert resp.status_code == 400
    details = {d["url"]: d["reason"] for d in resp.json()["details"]}
    assert details == {
        "https://example.com/payload.exe": "dangerous_extension",
        "ftp://example.com/x.pdf": "invalid_url",
    }
    assert downloader.calls == []
    assert await file_store.list_all() == []


@pytest.mark.asyncio
async def test_malformed_body_is_400(client):
    resp = await client.post("/files/upload", json={"fileUrls": "https://example.com/a.pdf"})

    assert resp.status_code == 400
    assert resp.json()["details"][0]["reason"] == "invalid_body"


@pytest.mark.asyncio
async def test_all_failed_is_400(client, downloader):
    url = "https://example.com/gone.pdf"
    downloader.script[url] = [DownloadError(404, "Not Found", url)]

    resp = await client.post("/files/upload", json={"fileUrls": [url]})

    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "All file uploads failed"
    assert body["details"][0]["url"] == url


@pytest.mark.asyncio
async def test_partial_failure_returns_only_successes(client, downloader):
    bad = "https://example.com/gone.pdf"
    downloader.script[bad] = [DownloadError(404, "Not Found", bad)]

    resp = await client.post("/files/upload", json={"fileUrls": ["https://example.com/ok.pdf", bad]})

    assert resp.status_code == 201
    assert [f["name"] for f in resp.json()] == ["ok.pdf"]
