from __future__ import annotations

"""
Metadata Codec
==============

Sidecar document stored next to every payload (`videoN.mp4` → `videoN.xml`):

    <?xml version="1.0" encoding="UTF-8"?>
    <video>
      <nome>video3.mp4</nome>
      <dataEnvio>2025-03-01T12:00:00.000Z</dataEnvio>
      <prazoValidade>2025-03-31</prazoValidade>
    </video>

Element names are kept as-is so stores written by earlier deployments stay
readable. Decoding also recognizes historical names for the expiration
element; the first one present in `EXPIRATION_ALIASES` order wins.

`rewrite_expiration` is a text-level patch, not a re-serialization: it changes
only the expiration value (or inserts the element before `</video>`) and keeps
every other byte of the document.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Union
from xml.sax.saxutils import escape

from tvwall.expiration.evaluator import parse_marker

ROOT_TAG = "video"
FILENAME_TAG = "nome"
SUBMITTED_TAG = "dataEnvio"
EXPIRATION_TAG = "prazoValidade"

EXPIRATION_ALIASES = (
    "expiration",
    "expirationDate",
    "validUntil",
    "expires",
    "dataExpiracao",
    EXPIRATION_TAG,
)

_CLOSING_TAG = f"</{ROOT_TAG}>"


# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Errors & types
# ─────────────────────────────────────────────────────────────────────────────
class MetadataError(ValueError):
    """Base for metadata decode/patch failures."""


class MalformedMetadata(MetadataError):
    """Document cannot be parsed at all."""


class MissingMetadataField(MetadataError):
    """Well-formed document without a required field."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Metadata field missing: {field}")
        self.field = field


@dataclass(frozen=True)
class MetadataDocument:
    filename: str
    submitted_at: Optional[datetime]
    expiration: Optional[date]
    expiration_text: Optional[str] = None

    @property
    def has_expiration(self) -> bool:
        return self.expiration is not None


# ─────────────────────────────────────────────────────────────────────────────
# 🔧 Helpers
# ─────────────────────────────────────────────────────────────────────────────
def format_instant(value: datetime) -> str:
    """ISO-8601 UTC instant with millisecond precision and a `Z` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_instant(text: Optional[str]) -> Optional[datetime]:
    s = (text or "").strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None


def _field_text(root: ET.Element, tag: str) -> Optional[str]:
    for el in root.iter(tag):
        if el.text and el.text.strip():
            return el.text.strip()
    return None


def _field_pattern(tag: str) -> re.Pattern:
    return re.compile(rf"(<{tag}>)(.*?)(</{tag}>)", re.DOTALL)


# ─────────────────────────────────────────────────────────────────────────────
# 📦 Codec
# ─────────────────────────────────────────────────────────────────────────────
def encode(filename: str, submitted_at: datetime, expiration: Union[str, date]) -> str:
    """Serialize a metadata document; the marker is written date-only when it is a date."""
    marker = expiration.isoformat() if isinstance(expiration, date) else str(expiration)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<{ROOT_TAG}>\n"
        f"  <{FILENAME_TAG}>{escape(filename)}</{FILENAME_TAG}>\n"
        f"  <{SUBMITTED_TAG}>{format_instant(submitted_at)}</{SUBMITTED_TAG}>\n"
        f"  <{EXPIRATION_TAG}>{escape(marker)}</{EXPIRATION_TAG}>\n"
        f"{_CLOSING_TAG}"
    )


def decode(document: Union[str, bytes]) -> MetadataDocument:
    """
    Parse a metadata document.

    Raises
    ------
    MalformedMetadata
        The text is not a parseable document.
    MissingMetadataField
        The filename element is absent.

    A missing or unparseable expiration is not an error: `expiration` is None.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise MalformedMetadata(f"Unparseable metadata document: {e}") from e

    filename = _field_text(root, FILENAME_TAG)
    if filename is None:
        raise MissingMetadataField(FILENAME_TAG)

    expiration_text = None
    for tag in EXPIRATION_ALIASES:
        expiration_text = _field_text(root, tag)
        if expiration_text is not None:
            break

    return MetadataDocument(
        filename=filename,
        submitted_at=_parse_instant(_field_text(root, SUBMITTED_TAG)),
        expiration=parse_marker(expiration_text),
        expiration_text=expiration_text,
    )


def rewrite_expiration(document: str, marker: Union[str, date]) -> str:
    """
    Patch the expiration value in place.

    The field rewritten is the one `decode` reads (first alias present), so the
    patched document always decodes to the new marker. When no expiration field
    exists, `<prazoValidade>` is inserted right before `</video>`.
    """
    value = escape(marker.isoformat() if isinstance(marker, date) else str(marker))

    matches = [m for m in (_field_pattern(tag).search(document) for tag in EXPIRATION_ALIASES) if m]
    # a filled field shadows empty ones when decoding
    filled = [m for m in matches if m.group(2).strip()]
    if filled or matches:
        match = (filled or matches)[0]
        return document[: match.start(2)] + value + document[match.end(2):]

    at = document.rfind(_CLOSING_TAG)
    if at < 0:
        raise MalformedMetadata(f"Metadata document has no {_CLOSING_TAG} terminator")
    return document[:at] + f"  <{EXPIRATION_TAG}>{value}</{EXPIRATION_TAG}>\n" + document[at:]


__all__ = [
    "EXPIRATION_ALIASES",
    "MalformedMetadata",
    "MetadataDocument",
    "MetadataError",
    "MissingMetadataField",
    "decode",
    "encode",
    "format_instant",
    "rewrite_expiration",
]
