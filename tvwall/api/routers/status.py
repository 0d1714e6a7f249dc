from __future__ import annotations

"""
TV Wall • Liveness
==================

- GET /status   → probe used by consoles to flag a display online/offline
- GET /healthz  → trivial liveness for orchestration

Both are exempt from rate limiting (see `tvwall.core.limiter.SKIP_PATHS`).
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Response

from tvwall.expiration.metadata import format_instant
from tvwall.schemas import StatusOut
from tvwall.security_headers import set_sensitive_cache

router = APIRouter(tags=["meta"])
__all__ = ["router", "SERVER_NAME"]

SERVER_NAME = "Video Server"
_STARTED_AT = time.monotonic()


@router.get("/status", response_model=StatusOut)
async def server_status(response: Response) -> StatusOut:
    """Always `online` while the process answers; `uptime` is in seconds."""
    set_sensitive_cache(response)
    return StatusOut(
        status="online",
        server=SERVER_NAME,
        uptime=round(time.monotonic() - _STARTED_AT, 3),
        timestamp=format_instant(datetime.now(timezone.utc)),
    )


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    return {"ok": True}
