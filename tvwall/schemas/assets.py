from __future__ import annotations

"""
TV Wall • Asset Store Schemas
=============================

Wire models for the store's HTTP surface. Field names are camelCase (and
`prazoValidade` / `xmlFile` keep their historical spelling) because consoles
and kiosk players already deployed read exactly these keys.

Design
------
- Responses carry `success: true`; failures go through the problem+json
  handlers instead and never reach these models.
- Request models are deliberately loose (`Any`) where the store itself owns
  validation, so a bad day count is a 400 from the store, not a 422 from
  pydantic.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# === Assets ================================================================

class AssetOut(BaseModel):
    """One entry of `/list` and `/check`."""

    model_config = ConfigDict(extra="ignore")

    filename: str
    url: str
    downloadUrl: str
    xmlFile: Optional[str] = None
    xmlUrl: Optional[str] = None
    size: int = 0
    created: Optional[datetime] = None


class AssetListOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = True
    videos: List[AssetOut] = Field(default_factory=list)
    count: int = 0
    exists: bool = False


class UploadOut(BaseModel):
    success: bool = True
    videoUrl: str
    filename: str
    originalName: Optional[str] = None
    size: int
    xmlFile: Optional[str] = None
    prazoValidade: str


class DeleteOut(BaseModel):
    success: bool = True
    message: str
    filename: str


# === Validity ==============================================================

class UpdateValidityIn(BaseModel):
    """Body of `POST /update-validity`; `expirationDays` may be a number or numeric text."""

    filename: Optional[str] = None
    expirationDays: Any = None


class UpdateValidityOut(BaseModel):
    success: bool = True
    filename: str
    xmlFile: str
    prazoValidade: str
    xmlUrl: str


# === Liveness ==============================================================

class StatusOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = True
    status: str = "online"
    server: str = ""
    uptime: float = 0.0
    timestamp: Optional[str] = None
