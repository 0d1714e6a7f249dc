# tvwall/core/config.py
from __future__ import annotations

"""
# TV Wall — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config shared
by the asset store server, the management console poller and the kiosk player.

## Goals
- Safe defaults for local/dev; every field optional so imports never crash.
- Per-call-class network timeouts for the console and the player.
- CSV → list helpers and store address normalization.

## Usage
    from tvwall.core.config import settings
"""

import logging
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def normalize_store_url(v: str | None) -> str:
    """
    Normalize a store address the way operators type it.

    Examples:
      '192.168.0.10:3000'       -> 'http://192.168.0.10:3000'
      'https://tv.example.com/' -> 'https://tv.example.com'
    """
    s = (v or "").strip()
    if not s:
        return ""
    if not (s.startswith("http://") or s.startswith("https://")):
        s = "http://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Store:
        - `STORE_DIR` holds payloads (`videoN.mp4`) and sidecars (`videoN.xml`).
        - `MAX_ASSETS` bounds the identity space probed by list/allocate.

    Console / player:
        - Timeouts are per call class; exceeding one counts as a transport failure.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "TV Wall Asset Store"
    VERSION: str = "1.0.0"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Asset store ───────────────────────────────────────────
    STORE_DIR: Path = Path("videos")
    PUBLIC_BASE_URL: Optional[str] = None  # falls back to the request base URL
    MAX_UPLOAD_BYTES: int = Field(100 * 1024 * 1024, ge=1)
    MAX_ASSETS: int = Field(100, ge=1, le=100_000)
    DEFAULT_VALIDITY_DAYS: int = Field(30, ge=0)

    # ── CORS ──────────────────────────────────────────────────
    FRONTEND_ORIGINS: Optional[str] = None  # CSV
    ALLOW_ORIGINS_REGEX: Optional[str] = None

    # ── Rate limiting ─────────────────────────────────────────
    DEFAULT_RATE_LIMIT: str = "600/minute"
    RATELIMIT_STORAGE_URI: Optional[str] = None

    # ── Console sync poller ───────────────────────────────────
    POLL_INTERVAL_SECONDS: float = Field(30, gt=0)
    POLL_TICK_SECONDS: float = Field(1, gt=0)
    STATUS_TIMEOUT_SECONDS: float = Field(5, gt=0)
    LIST_TIMEOUT_SECONDS: float = Field(10, gt=0)
    METADATA_TIMEOUT_SECONDS: float = Field(5, gt=0)
    MUTATION_TIMEOUT_SECONDS: float = Field(10, gt=0)
    UPLOAD_TIMEOUT_SECONDS: float = Field(60, gt=0)
    REGISTRY_FILE: Path = Path("televisions.json")

    # ── Kiosk player ──────────────────────────────────────────
    PLAYER_STORE_URL: str = "http://localhost:3000"
    PLAYER_REFRESH_SECONDS: float = Field(30, gt=0)
    PLAYER_COUNTDOWN_SECONDS: int = Field(10, ge=1)
    PLAYER_RETRY_DELAY_SECONDS: float = Field(3, ge=0)

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("PUBLIC_BASE_URL", mode="before")
    @classmethod
    def _normalize_public_base(cls, v: str | None) -> str | None:
        s = (v or "").strip()
        return s.rstrip("/") or None

    @field_validator("PLAYER_STORE_URL", mode="before")
    @classmethod
    def _normalize_player_store(cls, v: str | None) -> str:
        return normalize_store_url(v) or "http://localhost:3000"

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def frontend_origins_list(self) -> List[str]:
        """CORS allowlist from `FRONTEND_ORIGINS` (empty means any origin)."""
        return _split_csv(self.FRONTEND_ORIGINS)


# Singleton instance
settings = Settings()
