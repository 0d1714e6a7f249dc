from __future__ import annotations

"""
TV Wall • Display Endpoint Registry
===================================

Console-local list of registered televisions. Each entry points at exactly
one remote asset store and caches that store's asset list as of the last
successful poll (never a merge of several stores).

Persistence
-----------
Optional flat JSON file (`REGISTRY_FILE`): a list of camelCase records
`{id, displayNumber, storeAddress, caption, city, region, coordinates,
cachedAssets, serverStatus}`. Writes go to a temp file first and are then
swapped in with `os.replace`.

Subscribers
-----------
Callables registered with `subscribe` are invoked with the new endpoint count
whenever that count changes (add, remove, load). The sync poller uses this
to poll everything immediately.
"""

import json
import logging
import os
import uuid
from datetime import datetime
from enum import Enum as PyEnum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tvwall.core.config import normalize_store_url
from tvwall.expiration.evaluator import validity_band

logger = logging.getLogger(__name__)

Subscriber = Callable[[int], None]


# === Models ================================================================

class EndpointStatus(str, PyEnum):
    """Reachability as last observed by the poller."""
    CHECKING = "checking"
    ONLINE = "online"
    OFFLINE = "offline"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Coordinates(_CamelModel):
    lat: float = 0.0
    lng: float = 0.0


class CachedAsset(_CamelModel):
    """One remote asset as seen by the console, enriched with remaining validity."""

    filename: str
    url: str = ""
    download_url: str = ""
    size: int = 0
    created: Optional[datetime] = None
    expiration_days: Optional[int] = None

    @property
    def band(self) -> str:
        return validity_band(self.expiration_days)


class DisplayEndpoint(_CamelModel):
    id: str
    display_number: int = Field(1, ge=1)
    store_address: str
    caption: str = ""
    city: str = ""
    region: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)
    cached_assets: List[CachedAsset] = Field(default_factory=list)
    server_status: Optional[EndpointStatus] = None

    @field_validator("store_address", mode="before")
    @classmethod
    def _normalize_address(cls, v: Any) -> str:
        s = normalize_store_url(v)
        if not s:
            raise ValueError("store address is required")
        return s


class UnknownEndpoint(KeyError):
    """No endpoint registered under this id."""


# === Registry ==============================================================

class TelevisionRegistry:
    """In-memory registry with optional JSON persistence."""

    def __init__(self, path: Optional[Path] = None, *, autosave: bool = True) -> None:
        self.path = Path(path) if path is not None else None
        self.autosave = autosave and self.path is not None
        self._endpoints: Dict[str, DisplayEndpoint] = {}
        self._subscribers: List[Subscriber] = []

    # ── Subscribers ─────────────────────────────────────────────────────────
    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def _notify(self) -> None:
        count = len(self._endpoints)
        for callback in list(self._subscribers):
            callback(count)

    # ── Queries ─────────────────────────────────────────────────────────────
    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, endpoint_id: object) -> bool:
        return endpoint_id in self._endpoints

    def get(self, endpoint_id: str) -> DisplayEndpoint:
        try:
            return self._endpoints[endpoint_id]
        except KeyError:
            raise UnknownEndpoint(endpoint_id) from None

    def list(self) -> List[DisplayEndpoint]:
        return sorted(self._endpoints.values(), key=lambda e: e.display_number)

    def sharing_address(self, store_address: str) -> List[DisplayEndpoint]:
        """Endpoints backed by the same store (several TVs may share one backend)."""
        address = normalize_store_url(store_address)
        return [e for e in self.list() if e.store_address == address]

    # ── Mutations ───────────────────────────────────────────────────────────
    def add(
        self,
        store_address: str,
        *,
        caption: str = "",
        city: str = "",
        region: str = "",
        coordinates: Optional[Dict[str, float]] = None,
        display_number: Optional[int] = None,
        endpoint_id: Optional[str] = None,
    ) -> DisplayEndpoint:
        if display_number is None:
            display_number = max((e.display_number for e in self._endpoints.values()), default=0) + 1
        endpoint = DisplayEndpoint(
            id=endpoint_id or uuid.uuid4().hex,
            display_number=display_number,
            store_address=store_address,
            caption=caption or f"TV {display_number}",
            city=city,
            region=region,
            coordinates=Coordinates(**(coordinates or {})),
        )
        if endpoint.id in self._endpoints:
            raise ValueError(f"Endpoint id already registered: {endpoint.id}")
        self._endpoints[endpoint.id] = endpoint
        logger.info("Endpoint %s registered (%s)", endpoint.caption, endpoint.store_address)
        self._persist()
        self._notify()
        return endpoint

    def remove(self, endpoint_id: str) -> None:
        endpoint = self.get(endpoint_id)
        del self._endpoints[endpoint_id]
        logger.info("Endpoint %s removed", endpoint.caption)
        self._persist()
        self._notify()

    def update(self, endpoint_id: str, **changes: Any) -> DisplayEndpoint:
        """Replace fields of one endpoint; values go through model validation."""
        current = self.get(endpoint_id)
        changes.pop("id", None)
        updated = DisplayEndpoint.model_validate({**current.model_dump(), **changes})
        self._endpoints[endpoint_id] = updated
        self._persist()
        return updated

    # ── Persistence ─────────────────────────────────────────────────────────
    def load(self) -> int:
        """Replace the registry content with the file's; a missing file means empty."""
        if self.path is None:
            return len(self)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raw = []
        self._endpoints = {}
        for item in raw:
            endpoint = DisplayEndpoint.model_validate(item)
            self._endpoints[endpoint.id] = endpoint
        logger.info("Registry loaded: %s endpoint(s) from %s", len(self), self.path)
        self._notify()
        return len(self)

    def save(self) -> None:
        if self.path is None:
            return
        data = [e.model_dump(mode="json", by_alias=True) for e in self.list()]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def _persist(self) -> None:
        if self.autosave:
            self.save()


__all__ = [
    "CachedAsset",
    "Coordinates",
    "DisplayEndpoint",
    "EndpointStatus",
    "TelevisionRegistry",
    "UnknownEndpoint",
]
