# tvwall/main.py
from __future__ import annotations

"""
# TV Wall Asset Store — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for one display backend: clips are
uploaded here, listed by the management console and played by the kiosk.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Explicit **middleware order**: 1) request id → 2) CORS → 3) rate limits (installed last, once routes exist).
- Centralized problem+json exception handling.
- Store directory created at startup, never at import.

## Probes
- `/status`  — console liveness probe (`online`, uptime, timestamp).
- `/healthz` — orchestration liveness (process up).
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

# -- Logging bootstrap (Loguru + stdlib intercept) ----------------------------
from tvwall.core import logger as _logsetup  # noqa: F401

from tvwall.api.http_utils import get_asset_store
from tvwall.api.routers import router as store_router
from tvwall.core.config import settings
from tvwall.core.exception_handlers import (
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from tvwall.core.limiter import install_rate_limiter
from tvwall.middleware.request_id import RequestIDMiddleware
from tvwall.security_headers import configure_cors

logger = logging.getLogger("tvwall")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifecycle manager.

    Startup:
        - Create the store directory (payloads + metadata).
        - Log a startup banner with the store location.
    """
    store = app.dependency_overrides.get(get_asset_store, get_asset_store)()
    store.ensure_root()
    logger.info("✅ %s starting up | store=%s", settings.PROJECT_NAME, store.root.resolve())
    try:
        yield
    finally:
        logger.info("🛑 %s shutting down", settings.PROJECT_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: fully wired application with middleware, exception handlers
        and the store routes mounted at the root.
    """
    docs_url = "/docs" if settings.ENABLE_DOCS else None
    openapi_url = "/openapi.json" if settings.ENABLE_DOCS else None

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url=docs_url,
        redoc_url=None,
        openapi_url=openapi_url,
        lifespan=lifespan,
    )

    # ── Middlewares (order matters) ─────────────────────────────────────────
    app.add_middleware(RequestIDMiddleware)  # 1) Correlation ID
    configure_cors(app)                      # 2) CORS (any origin unless configured)

    # ── Exception handlers (problem+json) ───────────────────────────────────
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)           # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)             # type: ignore[arg-type]

    # ── Routers ─────────────────────────────────────────────────────────────
    app.include_router(store_router)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Service banner listing the store surface."""
        return JSONResponse(
            {
                "message": f"{settings.PROJECT_NAME} running",
                "version": settings.VERSION,
                "endpoints": {
                    "upload": "POST /upload (.mp4 only)",
                    "check": "GET /check",
                    "status": "GET /status",
                    "delete": "DELETE /delete/:filename",
                    "download": "GET /download/:filename",
                    "list": "GET /list",
                    "videos": "GET /videos/:filename",
                    "xml": "GET /xml/:filename",
                    "updateValidity": "POST /update-validity",
                },
                "docs": app.docs_url or "",
                "note": "Clips are stored as video1.mp4, video2.mp4, ...",
            }
        )

    # 3) SlowAPI middleware + 429 handler; needs the routes to mark exemptions
    install_rate_limiter(app)

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn tvwall.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tvwall.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3000")),
        reload=os.getenv("RELOAD", "0") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
