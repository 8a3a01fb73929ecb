"""
Shared test fixtures — temporary data directories, test client, auth helpers.
"""

import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# Set JWT_SECRET and storage dirs before importing app modules
_BOOT_DIR = tempfile.mkdtemp(prefix="meisterki-test-")
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["DATA_DIR"] = os.path.join(_BOOT_DIR, "data")
os.environ["GENERATED_DIR"] = os.path.join(_BOOT_DIR, "generated")
os.environ["UPLOADS_DIR"] = os.path.join(_BOOT_DIR, "uploads")

from meisterki.config import settings
from meisterki.main import app


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Point every store at a fresh directory for each test."""
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr(settings, "GENERATED_DIR", str(tmp_path / "generated"))
    monkeypatch.setattr(settings, "UPLOADS_DIR", str(tmp_path / "uploads"))
    for name in ("CLOUDFLARE_R2_ACCOUNT_ID", "CLOUDFLARE_R2_ACCESS_KEY_ID", "CLOUDFLARE_R2_SECRET_ACCESS_KEY"):
        monkeypatch.setattr(settings, name, "")
    yield tmp_path


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


def _register(client, email):
    response = client.post("/api/auth/register", json={
        "email": email,
        "password": "strongpassword123",
    })
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    """Register a test user and return auth headers."""
    return _register(client, "meister@malerbetrieb.de")


@pytest.fixture
def other_headers(client):
    """A second, unrelated user."""
    return _register(client, "other@elektro.de")
