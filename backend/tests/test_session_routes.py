"""Tests for upload session routes."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from starlette.datastructures import UploadFile

from helpers import settle
from media_uploads.services import get_session_registry, get_session_sweeper


def _files(*names: str, size: int = 100, content_type: str = "image/jpeg"):
    return [("files", (name, b"x" * size, content_type)) for name in names]


async def _open(client: AsyncClient) -> str:
    resp = await client.post("/api/sessions")
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.mark.asyncio
async def test_create_and_get_session(client: AsyncClient):
    session_id = await _open(client)

    resp = await client.get(f"/api/sessions/{session_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["attachments"] == []
    assert data["max_attachments"] == 10
    assert data["is_settled"] is True


@pytest.mark.asyncio
async def test_unknown_session_404(client: AsyncClient):
    resp = await client.get("/api/sessions/nope")
    assert resp.status_code == 404
    resp = await client.delete("/api/sessions/nope")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_add_files_and_complete(client: AsyncClient, fake_transfer):
    session_id = await _open(client)

    resp = await client.post(f"/api/sessions/{session_id}/files", files=_files("a.jpg", "b.jpg"))
    assert resp.status_code == 200
    data = resp.json()
    assert [a["filename"] for a in data["attachments"]] == ["a.jpg", "b.jpg"]
    assert data["attachments"][0]["is_main"] is True
    assert data["attachments"][0]["preview_url"].endswith(f"/{data['attachments'][0]['id']}/preview")
    assert data["rejections"] == []

    await settle(lambda: len(fake_transfer.started) == 2)
    fake_transfer.complete("a.jpg", "https://cdn.test/a")
    fake_transfer.complete("b.jpg", "https://cdn.test/b")
    await get_session_registry().get(session_id).wait_idle()

    resp = await client.get(f"/api/sessions/{session_id}")
    attachments = resp.json()["attachments"]
    assert [a["status"] for a in attachments] == ["done", "done"]
    assert attachments[0]["remote_url"] == "https://cdn.test/a"
    assert attachments[0]["preview_url"] is None

    resp = await client.get(f"/api/sessions/{session_id}/submission")
    submission = resp.json()
    assert submission["image_urls"] == ["https://cdn.test/a", "https://cdn.test/b"]
    assert submission["main_image_url"] == "https://cdn.test/a"
    assert submission["is_settled"] is True


@pytest.mark.asyncio
async def test_rejections_reported(client: AsyncClient):
    session_id = await _open(client)

    resp = await client.post(
        f"/api/sessions/{session_id}/files?auto_start=false",
        files=_files("ok.png", content_type="image/png") + _files("big.jpg", size=6 * 1024 * 1024),
    )
    data = resp.json()
    assert len(data["attachments"]) == 1
    assert data["rejections"][0]["reason"] == "file_too_large"
    assert data["notices"] == ["File big.jpg exceeds maximum file size of 5MB"]


@pytest.mark.asyncio
async def test_deferred_upload_and_start(client: AsyncClient, fake_transfer):
    session_id = await _open(client)

    resp = await client.post(
        f"/api/sessions/{session_id}/files?auto_start=false",
        files=_files("1.jpg", "2.jpg", "3.jpg"),
    )
    assert resp.json()["pending_held_count"] == 3
    assert resp.json()["started"] is False

    resp = await client.get(f"/api/sessions/{session_id}")
    assert resp.json()["active_count"] == 0

    resp = await client.post(f"/api/sessions/{session_id}/start")
    assert resp.json() == {"started": 3}
    await settle(lambda: len(fake_transfer.started) == 3)


@pytest.mark.asyncio
async def test_preview_served_until_removed(client: AsyncClient):
    session_id = await _open(client)
    resp = await client.post(
        f"/api/sessions/{session_id}/files?auto_start=false",
        files=[("files", ("a.png", b"\x89PNG-bytes", "image/png"))],
    )
    attachment_id = resp.json()["attachments"][0]["id"]

    resp = await client.get(f"/api/sessions/{session_id}/attachments/{attachment_id}/preview")
    assert resp.status_code == 200
    assert resp.content == b"\x89PNG-bytes"
    assert resp.headers["content-type"] == "image/png"

    resp = await client.delete(f"/api/sessions/{session_id}/attachments/{attachment_id}")
    assert resp.status_code == 204

    resp = await client.get(f"/api/sessions/{session_id}/attachments/{attachment_id}/preview")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_main_and_alt_text(client: AsyncClient):
    session_id = await _open(client)
    resp = await client.post(
        f"/api/sessions/{session_id}/files?auto_start=false",
        files=_files("a.jpg", "b.jpg"),
    )
    a_id, b_id = [a["id"] for a in resp.json()["attachments"]]

    resp = await client.put(f"/api/sessions/{session_id}/attachments/{b_id}/main")
    assert resp.status_code == 200
    flags = {a["id"]: a["is_main"] for a in resp.json()["attachments"]}
    assert flags == {a_id: False, b_id: True}

    resp = await client.patch(
        f"/api/sessions/{session_id}/attachments/{a_id}",
        json={"alt_text": "Entrance ramp"},
    )
    assert resp.status_code == 200
    assert resp.json()["alt_text"] == "Entrance ramp"

    resp = await client.put(f"/api/sessions/{session_id}/attachments/nope/main")
    assert resp.status_code == 404
    resp = await client.patch(f"/api/sessions/{session_id}/attachments/nope", json={"alt_text": "x"})
    assert resp.status_code == 404
    resp = await client.delete(f"/api/sessions/{session_id}/attachments/nope")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_close_session_cancels_uploads(client: AsyncClient, fake_transfer):
    session_id = await _open(client)
    await client.post(f"/api/sessions/{session_id}/files", files=_files("a.jpg"))
    await settle(lambda: fake_transfer.started)

    resp = await client.delete(f"/api/sessions/{session_id}")
    assert resp.status_code == 204
    assert fake_transfer.tokens["a.jpg"].is_cancelled()

    resp = await client.get(f"/api/sessions/{session_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_idle_sessions_swept(client: AsyncClient):
    assert get_session_sweeper().running is True
    stale = await _open(client)
    fresh = await _open(client)
    get_session_registry().get(stale).last_activity -= 3600

    assert await get_session_registry().expire_idle(max_idle=1800) == [stale]

    assert (await client.get(f"/api/sessions/{stale}")).status_code == 404
    assert (await client.get(f"/api/sessions/{fresh}")).status_code == 200


@pytest.mark.asyncio
async def test_rejected_files_are_never_read(client: AsyncClient):
    session_id = await _open(client)
    read = []
    original_read = UploadFile.read

    async def recording_read(self, size: int = -1):
        read.append(self.filename)
        return await original_read(self, size)

    with patch.object(UploadFile, "read", recording_read):
        resp = await client.post(
            f"/api/sessions/{session_id}/files?auto_start=false",
            files=(
                _files("ok.jpg")
                + _files("big.jpg", size=6 * 1024 * 1024)
                + _files("doc.pdf", content_type="application/pdf")
                + _files(*[f"{i}.jpg" for i in range(10)])
            ),
        )

    data = resp.json()
    # Ten slots: the batch is cut after 6.jpg, then big.jpg and doc.pdf fail their checks
    assert read == ["ok.jpg"] + [f"{i}.jpg" for i in range(7)]
    assert len(data["attachments"]) == 8
    reasons = {r["filename"]: r["reason"] for r in data["rejections"]}
    assert reasons == {
        "big.jpg": "file_too_large",
        "doc.pdf": "unsupported_type",
        "7.jpg": "capacity_exceeded",
        "8.jpg": "capacity_exceeded",
        "9.jpg": "capacity_exceeded",
    }
