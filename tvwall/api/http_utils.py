from __future__ import annotations

"""
TV Wall · HTTP Utilities
========================

Shared helpers for the asset store routers:

- Store dependency (`get_asset_store`), overridable in tests
- Public base URL resolution for absolute links in responses
- No-store JSON helper

Notes
-----
• Links are absolute because consoles and players fetch them from other hosts.
  `PUBLIC_BASE_URL` wins when set (reverse proxies); otherwise the request's
  own base URL is used.
"""

from functools import lru_cache
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from tvwall.core.config import settings
from tvwall.storage import AssetStore

__all__ = [
    "get_asset_store",
    "public_base_url",
    "asset_links",
    "json_no_store",
]


# ─────────────────────────────────────────────────────────────────────────────
# 🗄️ Store dependency
# ─────────────────────────────────────────────────────────────────────────────

@lru_cache(maxsize=1)
def get_asset_store() -> AssetStore:
    """Process-wide store built from settings."""
    return AssetStore(
        settings.STORE_DIR,
        max_assets=settings.MAX_ASSETS,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
        default_validity_days=settings.DEFAULT_VALIDITY_DAYS,
    )


# ─────────────────────────────────────────────────────────────────────────────
# 🔗 Links
# ─────────────────────────────────────────────────────────────────────────────

def public_base_url(request: Request) -> str:
    """Base for absolute links, without trailing slash."""
    if settings.PUBLIC_BASE_URL:
        return settings.PUBLIC_BASE_URL
    return str(request.base_url).rstrip("/")


def asset_links(base: str, filename: str) -> dict:
    """`url` (inline playback) and `downloadUrl` (attachment) for one payload."""
    return {
        "url": f"{base}/videos/{filename}",
        "downloadUrl": f"{base}/download/{filename}",
    }


# ─────────────────────────────────────────────────────────────────────────────
# 📦 JSON helper
# ─────────────────────────────────────────────────────────────────────────────

def json_no_store(payload: Any, status_code: int = 200) -> JSONResponse:
    """
    Return a JSON response with strict `no-store` caching.

    Pydantic models are dumped with their JSON encoders (datetimes become
    ISO-8601 strings).
    """
    resp = JSONResponse(content=jsonable_encoder(payload), status_code=status_code)
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"
    return resp
