"""Test fixtures: controllable transfer, upload sessions and FastAPI test client."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from helpers import FakeTransfer
from media_uploads.services import init_services, shutdown_services
from media_uploads.services.attachment_list import AttachmentList
from media_uploads.services.media_session import MediaUploadSession


@pytest.fixture
def fake_transfer():
    return FakeTransfer()


@pytest.fixture
def attachments():
    return AttachmentList()


@pytest_asyncio.fixture
async def session(fake_transfer):
    """Upload session with the default policy (10 files, 5 MB, 3 slots)."""
    s = MediaUploadSession(
        fake_transfer,
        concurrency_limit=3,
        max_attachments=10,
        max_file_size=5 * 1024 * 1024,
        allowed_content_types=["image/jpeg", "image/png", "image/gif", "image/webp"],
    )
    yield s
    await s.close()


@pytest_asyncio.fixture
async def client(fake_transfer):
    """Provide an async test client wired to the fake transfer."""
    from media_uploads.main import create_app

    init_services(transfer=fake_transfer)
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    await shutdown_services()
