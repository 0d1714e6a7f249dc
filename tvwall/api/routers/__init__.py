"""
🧭 TV Wall • Router Aggregator
=============================

Composes the store surface (assets + liveness) into one `APIRouter`,
mounted at the root by `tvwall.main.create_app`.
"""

from fastapi import APIRouter

from .assets import router as assets_router
from .status import router as status_router


def build_router() -> APIRouter:
    """Combined router: liveness first, then the asset routes."""
    router = APIRouter()
    router.include_router(status_router)
    router.include_router(assets_router)
    return router


router = build_router()

__all__ = ["router", "build_router", "assets_router", "status_router"]
