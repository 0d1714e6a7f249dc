# tvwall/security_headers.py
from __future__ import annotations

"""
# TV Wall — CORS & Cache Headers

Consoles and kiosk players run on whatever host the operator opens them
from, so CORS defaults to *any origin* unless an allow-list is configured.

## Quick start
    from tvwall.security_headers import configure_cors, set_sensitive_cache

    app = FastAPI()
    configure_cors(app)

## Config
- FRONTEND_ORIGINS (CSV; exact origins), ALLOW_ORIGINS_REGEX (single regex)
"""

from typing import Iterable, Optional, Union

from fastapi import Request, Response
from starlette.middleware.cors import CORSMiddleware

from tvwall.core.config import settings


def set_sensitive_cache(target: Union[Response, Request], *, seconds: int = 0) -> None:
    """
    Mark a **Response** as not cacheable (`seconds <= 0`) or privately
    cacheable for a short time. Listing responses change on every upload,
    so they are served `no-store`.
    """
    if not isinstance(target, Response):
        raise TypeError("set_sensitive_cache expects a Response")
    if seconds <= 0:
        target.headers["Cache-Control"] = "no-store"
        target.headers["Pragma"] = "no-cache"
        target.headers["Expires"] = "0"
    else:
        target.headers["Cache-Control"] = f"private, max-age={seconds}"


def configure_cors(
    app,
    *,
    allow_methods: Optional[Iterable[str]] = None,
    allow_headers: Optional[Iterable[str]] = None,
) -> None:
    """Install CORS from settings; no allow-list means every origin."""
    allow_methods = allow_methods or ["GET", "HEAD", "OPTIONS", "POST", "DELETE"]
    allow_headers = allow_headers or ["Content-Type", "X-Request-ID", "Range"]

    origins = settings.frontend_origins_list
    origins_regex = (settings.ALLOW_ORIGINS_REGEX or "").strip() or None
    if not origins and not origins_regex:
        origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=origins_regex,
        allow_credentials=False,
        allow_methods=list(allow_methods),
        allow_headers=list(allow_headers),
        expose_headers=["Content-Disposition", "Content-Length", "Accept-Ranges", "X-Request-ID"],
        max_age=3600,
    )


__all__ = ["configure_cors", "set_sensitive_cache"]
