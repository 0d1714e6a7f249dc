from __future__ import annotations

"""
TV Wall — HTTP Rate Limiting (SlowAPI)
======================================

Protects the asset store from runaway consoles. Keys are per client IP
(X-Forwarded-For / X-Real-IP / client.host). Liveness, metadata and media
streaming routes are exempt: players and pollers hit them on a fixed cadence.

Exemptions are path based. `install_rate_limiter` walks the app's routes and
marks every route whose path matches RATE_LIMIT_SKIP_PATHS with
`limiter.exempt`, so it must run after the routers are included.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
DEFAULT_RATE_LIMIT           default: settings.DEFAULT_RATE_LIMIT
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATE_LIMIT_SKIP_PATHS        default: "/status,/healthz,/videos/,/xml/,/download/xml/,/docs,/openapi.json"

Usage
-----
    from tvwall.core.limiter import install_rate_limiter

    app = FastAPI()
    app.include_router(router)
    install_rate_limiter(app)
"""

import os
from typing import Iterable, List, Optional

from loguru import logger
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request

from tvwall.core.config import settings

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
DEFAULT_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", settings.DEFAULT_RATE_LIMIT).strip()
STORAGE_URI = (os.getenv("RATELIMIT_STORAGE_URI") or settings.RATELIMIT_STORAGE_URI or "").strip()

SKIP_PATHS: List[str] = [
    p.strip()
    for p in os.getenv(
        "RATE_LIMIT_SKIP_PATHS",
        "/status,/healthz,/videos/,/xml/,/download/xml/,/docs,/openapi.json",
    ).split(",")
    if p.strip()
]


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def _client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return get_remote_address(request) or "unknown"


def get_rate_limit_key(request: Request) -> str:
    return f"ip:{_client_ip(request)}"


def is_skipped_path(path: str, skip_paths: Iterable[str] = SKIP_PATHS) -> bool:
    """
    True when `path` (a request path or a route template such as
    `/videos/{filename}`) equals a skip entry or lives under it.
    """
    for prefix in skip_paths:
        if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
            return True
    return False


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance
# ──────────────────────────────────────────────────────────────
def _build_default_limits() -> List[str]:
    return [chunk.strip() for chunk in DEFAULT_LIMIT.split(",") if chunk.strip()]


def build_limiter(default_limits: Optional[List[str]] = None) -> Limiter:
    return Limiter(
        key_func=get_rate_limit_key,
        default_limits=default_limits if default_limits is not None else _build_default_limits(),
        headers_enabled=False,
        storage_uri=STORAGE_URI or "memory://",
    )


limiter = build_limiter()


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(
    app,
    *,
    rate_limiter: Optional[Limiter] = None,
    enabled: Optional[bool] = None,
) -> None:
    """
    Attach SlowAPI middleware and its 429 handler, and exempt the routes
    under SKIP_PATHS. Skipped entirely when disabled by env.
    """
    if not (RATE_LIMIT_ENABLED if enabled is None else enabled):
        logger.info("RateLimiter disabled by env; middleware not installed")
        return

    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded

    active = rate_limiter or limiter
    exempted = []
    for route in app.routes:
        path = getattr(route, "path", "")
        endpoint = getattr(route, "endpoint", None)
        if endpoint is not None and is_skipped_path(path):
            active.exempt(endpoint)
            exempted.append(path)

    app.state.limiter = active
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info(
        "RateLimiter ready | default={} | storage={} | exempt={}",
        _build_default_limits() if rate_limiter is None else "custom",
        STORAGE_URI or "memory://",
        exempted,
    )


__all__ = ["build_limiter", "get_rate_limit_key", "install_rate_limiter", "is_skipped_path", "limiter"]
