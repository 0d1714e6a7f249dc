# tests/conftest.py
"""
Global test bootstrap
- Disables SlowAPI rate limiting (env set BEFORE importing the app)
- Builds a store on a pytest `tmp_path` with a fixed clock
- Exposes an app wired to that store + a TestClient
"""

from __future__ import annotations

import os

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (must be set before tvwall modules are imported)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("LOG_TO_FILE", "0")

import pytest
from fastapi.testclient import TestClient

from tvwall.api.http_utils import get_asset_store
from tvwall.main import create_app
from tvwall.storage import AssetStore

from tests.helpers import FIXED_NOW, STORE_BASE_URL


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def store(tmp_path) -> AssetStore:
    """✅ Empty store under tmp_path; "now" is always FIXED_NOW."""
    s = AssetStore(tmp_path / "videos", clock=lambda: FIXED_NOW)
    s.ensure_root()
    return s


@pytest.fixture
def app(store):
    """🧪 Full application (middleware + handlers) using the tmp store."""
    application = create_app()
    application.dependency_overrides[get_asset_store] = lambda: store
    return application


@pytest.fixture
def client(app):
    with TestClient(app, base_url=STORE_BASE_URL) as c:
        yield c
