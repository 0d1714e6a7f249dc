"""Filesystem asset store (payload + sidecar metadata per `videoN` identity)."""

from tvwall.storage.asset_store import AssetStore, AssetSummary, UploadResult, allocate_identity

__all__ = ["AssetStore", "AssetSummary", "UploadResult", "allocate_identity"]
