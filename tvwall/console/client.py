from __future__ import annotations

"""
TV Wall • Asset Store Client (httpx)
====================================

Async client used by the console and the kiosk player to talk to one remote
asset store.

Error mapping
-------------
- network error, timeout, malformed body, any non-success status other
  than 400/404 → `TransportFailure`
- 404 → `RemoteNotFound`
- 400 → `RemoteRejected` (bad name, bad day count, wrong format)

Every call carries the timeout of its call class (status, list, metadata,
mutation, upload) from settings; exceeding it is a `TransportFailure`.

Batches
-------
`upload_many` / `delete_many` run items one after the other; one item's
failure never stops the batch. The `BatchResult` reports per-item outcomes
plus `succeeded` / `failed` counts.
"""

import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union

import httpx

from tvwall.core.config import normalize_store_url, settings
from tvwall.schemas import AssetListOut, DeleteOut, StatusOut, UpdateValidityOut, UploadOut

logger = logging.getLogger(__name__)

UploadSource = Union[Path, str, bytes]


# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Errors
# ─────────────────────────────────────────────────────────────────────────────
class StoreClientError(Exception):
    """Base for failures talking to a remote store."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportFailure(StoreClientError):
    """Store unreachable, too slow, or answering something unusable."""


class RemoteNotFound(StoreClientError):
    """Store answered 404."""


class RemoteRejected(StoreClientError):
    """Store answered 400."""


# ─────────────────────────────────────────────────────────────────────────────
# ⏱️ Timeouts
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Timeouts:
    status: float = settings.STATUS_TIMEOUT_SECONDS
    list: float = settings.LIST_TIMEOUT_SECONDS
    metadata: float = settings.METADATA_TIMEOUT_SECONDS
    mutation: float = settings.MUTATION_TIMEOUT_SECONDS
    upload: float = settings.UPLOAD_TIMEOUT_SECONDS


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


# ─────────────────────────────────────────────────────────────────────────────
# 🌐 Client
# ─────────────────────────────────────────────────────────────────────────────
class StoreClient:
    """
    Thin async wrapper over one store's HTTP surface.

    Use as an async context manager, or call `aclose()` when done. A custom
    `transport` (e.g. `httpx.ASGITransport`, `httpx.MockTransport`) replaces
    the network.
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeouts: Optional[Timeouts] = None,
    ) -> None:
        self.base_url = normalize_store_url(base_url)
        self.timeouts = timeouts or Timeouts()
        self._client = httpx.AsyncClient(base_url=self.base_url, transport=transport)

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, *, timeout: float, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, timeout=timeout, **kwargs)
        except httpx.HTTPError as e:
            raise TransportFailure(f"{method} {self.base_url}{url}: {e.__class__.__name__}: {e}") from e

        if resp.status_code == 404:
            raise RemoteNotFound(_error_message(resp), status_code=404)
        if resp.status_code == 400:
            raise RemoteRejected(_error_message(resp), status_code=400)
        if not resp.is_success:
            raise TransportFailure(
                f"{method} {self.base_url}{url}: HTTP {resp.status_code}: {_error_message(resp)}",
                status_code=resp.status_code,
            )
        return resp

    async def _json(self, model, method: str, url: str, *, timeout: float, **kwargs: Any):
        resp = await self._request(method, url, timeout=timeout, **kwargs)
        try:
            return model.model_validate(resp.json())
        except ValueError as e:
            raise TransportFailure(f"{method} {self.base_url}{url}: unusable response body") from e

    # ── Calls ───────────────────────────────────────────────────────────────
    async def status(self) -> StatusOut:
        return await self._json(StatusOut, "GET", "/status", timeout=self.timeouts.status)

    async def list_assets(self) -> AssetListOut:
        return await self._json(AssetListOut, "GET", "/list", timeout=self.timeouts.list)

    async def fetch_metadata(self, url_or_filename: str) -> bytes:
        """Accepts the absolute `xmlUrl` from a listing or a bare `videoN.xml`."""
        url = url_or_filename if "://" in url_or_filename else f"/xml/{url_or_filename}"
        resp = await self._request("GET", url, timeout=self.timeouts.metadata)
        return resp.content

    async def upload(
        self,
        source: UploadSource,
        *,
        filename: Optional[str] = None,
        policy: Optional[Union[int, str]] = None,
        content_type: Optional[str] = None,
    ) -> UploadOut:
        if isinstance(source, bytes):
            content, name = source, filename or "video.mp4"
        else:
            path = Path(source)
            content, name = path.read_bytes(), filename or path.name
        ctype = content_type or mimetypes.guess_type(name)[0] or "application/octet-stream"
        data = {} if policy is None else {"prazoValidade": str(policy)}
        return await self._json(
            UploadOut,
            "POST",
            "/upload",
            timeout=self.timeouts.upload,
            files={"video": (name, content, ctype)},
            data=data,
        )

    async def delete(self, filename: str) -> DeleteOut:
        return await self._json(DeleteOut, "DELETE", f"/delete/{filename}", timeout=self.timeouts.mutation)

    async def update_validity(self, filename: str, days: int) -> UpdateValidityOut:
        return await self._json(
            UpdateValidityOut,
            "POST",
            "/update-validity",
            timeout=self.timeouts.mutation,
            json={"filename": filename, "expirationDays": days},
        )


# ─────────────────────────────────────────────────────────────────────────────
# 📦 Batches
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class BatchItem:
    name: str
    ok: bool
    reason: Optional[str] = None
    result: Any = None


@dataclass
class BatchResult:
    items: List[BatchItem] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for i in self.items if i.ok)

    @property
    def failed(self) -> int:
        return sum(1 for i in self.items if not i.ok)

    def summary(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed"


async def upload_many(
    client: StoreClient,
    sources: Iterable[Union[UploadSource, Tuple[str, bytes]]],
    *,
    policy: Optional[Union[int, str]] = None,
) -> BatchResult:
    """Upload each source in turn; `(name, bytes)` pairs and paths are accepted."""
    batch = BatchResult()
    for source in sources:
        if isinstance(source, tuple):
            name, payload = source
            kwargs = {"filename": name}
        else:
            name, payload, kwargs = Path(source).name, source, {}
        try:
            result = await client.upload(payload, policy=policy, **kwargs)
        except (StoreClientError, OSError) as e:
            logger.warning("Upload of %s to %s failed: %s", name, client.base_url, e)
            batch.items.append(BatchItem(name=name, ok=False, reason=str(e)))
        else:
            batch.items.append(BatchItem(name=name, ok=True, result=result))
    logger.info("Upload batch to %s: %s", client.base_url, batch.summary())
    return batch


async def delete_many(client: StoreClient, filenames: Iterable[str]) -> BatchResult:
    batch = BatchResult()
    for filename in filenames:
        try:
            result = await client.delete(filename)
        except StoreClientError as e:
            logger.warning("Delete of %s on %s failed: %s", filename, client.base_url, e)
            batch.items.append(BatchItem(name=filename, ok=False, reason=str(e)))
        else:
            batch.items.append(BatchItem(name=filename, ok=True, result=result))
    logger.info("Delete batch on %s: %s", client.base_url, batch.summary())
    return batch


__all__ = [
    "BatchItem",
    "BatchResult",
    "RemoteNotFound",
    "RemoteRejected",
    "StoreClient",
    "StoreClientError",
    "Timeouts",
    "TransportFailure",
    "delete_many",
    "upload_many",
]
