"""Pydantic request/response models shared by the store routes and the console client."""

from tvwall.schemas.assets import (
    AssetListOut,
    AssetOut,
    DeleteOut,
    StatusOut,
    UpdateValidityIn,
    UpdateValidityOut,
    UploadOut,
)

__all__ = [
    "AssetListOut",
    "AssetOut",
    "DeleteOut",
    "StatusOut",
    "UpdateValidityIn",
    "UpdateValidityOut",
    "UploadOut",
]
