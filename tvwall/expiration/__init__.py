"""Asset expiration: sidecar metadata codec and remaining-validity arithmetic."""

from tvwall.expiration.evaluator import remaining_days, resolve_marker, validity_band
from tvwall.expiration.metadata import MetadataDocument, MetadataError, decode, encode, rewrite_expiration

__all__ = [
    "MetadataDocument",
    "MetadataError",
    "decode",
    "encode",
    "remaining_days",
    "resolve_marker",
    "rewrite_expiration",
    "validity_band",
]
