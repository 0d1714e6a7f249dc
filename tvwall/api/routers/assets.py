from __future__ import annotations

"""
TV Wall • Asset Store Routes
============================

HTTP surface of one display backend. Paths are mounted at the root because
deployed consoles and kiosk players address them directly.

Route Index
-----------
- POST   /upload                    → store one MPEG-4 payload + metadata
- GET    /list                      → every asset with links and metadata link
- GET    /check                     → existence probe (same listing, no metadata link)
- DELETE /delete/{filename}         → payload then metadata
- GET    /download/{filename}       → payload as attachment
- GET    /videos/{filename}         → payload inline (playback)
- GET    /xml/{filename}            → metadata document
- GET    /download/xml/{filename}   → metadata document as attachment
- POST   /update-validity           → set expiration to today + N days

Failure Modes
-------------
- The store raises `AppException` subclasses (400/404/413/507); the
  problem+json handlers render them. Routes never translate errors.
- Handlers are sync (`def`): file I/O runs in FastAPI's threadpool.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import FileResponse

from tvwall.api.http_utils import asset_links, get_asset_store, json_no_store, public_base_url
from tvwall.core.exceptions import InvalidArgument
from tvwall.schemas import (
    AssetListOut,
    AssetOut,
    DeleteOut,
    UpdateValidityIn,
    UpdateValidityOut,
    UploadOut,
)
from tvwall.storage import AssetStore
from tvwall.storage.asset_store import metadata_name_for

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Assets"])
__all__ = ["router"]

MP4_MEDIA_TYPE = "video/mp4"
XML_MEDIA_TYPE = "application/xml"


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _listing(store: AssetStore, base: str, *, with_metadata: bool) -> AssetListOut:
    videos = []
    for summary in store.list():
        entry = AssetOut(
            filename=summary.filename,
            size=summary.size,
            created=summary.created,
            **asset_links(base, summary.filename),
        )
        if with_metadata:
            entry.xmlFile = summary.metadata_filename
            entry.xmlUrl = f"{base}/xml/{summary.metadata_filename}" if summary.has_metadata else None
        videos.append(entry)
    return AssetListOut(videos=videos, count=len(videos), exists=bool(videos))


# ─────────────────────────────────────────────────────────────────────────────
# ⬆️ Upload
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/upload", response_model=UploadOut, summary="Upload one clip (.mp4 only)")
def upload_video(
    request: Request,
    video: Optional[UploadFile] = File(None),
    prazoValidade: Optional[str] = Form(None),
    store: AssetStore = Depends(get_asset_store),
):
    """
    Store a clip as the next free `videoN.mp4` and write its metadata.

    `prazoValidade` is a day count (`"15"`) or an absolute date; absent means
    the configured default validity.
    """
    if video is None or not video.filename:
        raise InvalidArgument("No file was sent")

    result = store.upload(
        video.file,
        filename_hint=video.filename,
        content_type=video.content_type,
        raw_policy=prazoValidade,
    )
    base = public_base_url(request)
    return json_no_store(
        UploadOut(
            videoUrl=asset_links(base, result.filename)["url"],
            filename=result.filename,
            originalName=result.original_name,
            size=result.size,
            xmlFile=result.metadata_filename,
            prazoValidade=result.expiration,
        )
    )


# ─────────────────────────────────────────────────────────────────────────────
# 📋 Listing
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/list", response_model=AssetListOut, summary="List clips with metadata links")
def list_videos(request: Request, store: AssetStore = Depends(get_asset_store)):
    return json_no_store(_listing(store, public_base_url(request), with_metadata=True))


@router.get("/check", response_model=AssetListOut, summary="Check whether any clip exists")
def check_videos(request: Request, store: AssetStore = Depends(get_asset_store)):
    return json_no_store(_listing(store, public_base_url(request), with_metadata=False))


# ─────────────────────────────────────────────────────────────────────────────
# 🗑️ Delete
# ─────────────────────────────────────────────────────────────────────────────

@router.delete("/delete/{filename}", response_model=DeleteOut, summary="Delete a clip and its metadata")
def delete_video(filename: str, store: AssetStore = Depends(get_asset_store)):
    store.delete(filename)
    return json_no_store(DeleteOut(message="Video deleted", filename=filename))


# ─────────────────────────────────────────────────────────────────────────────
# ⬇️ Fetch
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/download/xml/{filename}", summary="Download a metadata document")
def download_metadata(filename: str, store: AssetStore = Depends(get_asset_store)):
    return FileResponse(store.metadata_path(filename), media_type=XML_MEDIA_TYPE, filename=filename)


@router.get("/xml/{filename}", summary="Read a metadata document")
def read_metadata(filename: str, store: AssetStore = Depends(get_asset_store)):
    return FileResponse(store.metadata_path(filename), media_type=XML_MEDIA_TYPE)


@router.get("/download/{filename}", summary="Download a clip")
def download_video(filename: str, store: AssetStore = Depends(get_asset_store)):
    return FileResponse(store.payload_path(filename), media_type=MP4_MEDIA_TYPE, filename=filename)


@router.get("/videos/{filename}", summary="Stream a clip inline")
def stream_video(filename: str, store: AssetStore = Depends(get_asset_store)):
    return FileResponse(store.payload_path(filename), media_type=MP4_MEDIA_TYPE)


# ─────────────────────────────────────────────────────────────────────────────
# ⏳ Validity
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/update-validity", response_model=UpdateValidityOut, summary="Set expiration to today + N days")
def update_validity(
    request: Request,
    payload: Optional[UpdateValidityIn] = None,
    store: AssetStore = Depends(get_asset_store),
):
    payload = payload or UpdateValidityIn()
    marker = store.update_validity(payload.filename, payload.expirationDays)
    xml_file = metadata_name_for(payload.filename)
    return json_no_store(
        UpdateValidityOut(
            filename=payload.filename,
            xmlFile=xml_file,
            prazoValidade=marker,
            xmlUrl=f"{public_base_url(request)}/xml/{xml_file}",
        )
    )
