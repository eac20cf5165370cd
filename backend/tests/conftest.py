"""Test fixtures — temporary local storage and FastAPI test clients."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_revisions, get_storage
from app.main import create_app
from app.services.auth import create_session_token
from app.services.metadata import MetadataResolver
from app.services.revisions import ListingRevisions
from app.storage.local import LocalStorageBackend


@pytest.fixture
def storage(tmp_path):
    """Local storage rooted in a temp directory."""
    return LocalStorageBackend(tmp_path / "uploads")


@pytest.fixture
def revisions():
    return ListingRevisions()


@pytest.fixture
def resolver(storage):
    return MetadataResolver(storage, probe_timeout=2.0, probe_concurrency=4)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_session_token('admin')}"}


@pytest_asyncio.fixture
async def client(storage, revisions):
    """Async test client with storage and revisions overridden."""
    app = create_app()
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_revisions] = lambda: revisions

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
