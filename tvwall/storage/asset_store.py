# tvwall/storage/asset_store.py
from __future__ import annotations

"""
🎞️ TV Wall • Asset Store
========================

Filesystem-backed store for one display backend. Layout under `root`:

    videoN.mp4   payload (MPEG-4)
    videoN.xml   sidecar metadata (see `tvwall.expiration.metadata`)

🎯 Contract
-----------
- `upload`          → validate format/size, claim the next free `videoN`,
                      write payload, then write metadata (best-effort)
- `list`            → probe `video1..videoMAX` and report size/created/metadata
- `delete`          → payload first, then best-effort metadata
- `update_validity` → patch (or synthesize) the metadata expiration
- `payload_path` / `read_metadata` → fetch helpers for streaming

Identity claim
--------------
The free slot is claimed with an exclusive create (`open(..., "xb")`), so two
uploads racing for the same store never share a slot: the loser moves on to
the next free number.

Validation
----------
Names are checked against `video\\d+\\.mp4` / `video\\d+\\.xml` before any
filesystem access; anything else (including traversal attempts) is rejected
with `InvalidArgument`.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, List, Optional, Set, Tuple

from tvwall.core.exceptions import InvalidArgument, InvalidFormat, NotFound, StoreFull, TooLarge
from tvwall.expiration import metadata as codec
from tvwall.expiration.evaluator import DEFAULT_VALIDITY_DAYS, resolve_marker, utcnow

logger = logging.getLogger(__name__)

ASSET_NAME_RE = re.compile(r"^video(\d+)\.mp4$")
METADATA_NAME_RE = re.compile(r"^video(\d+)\.xml$")

MP4_CONTENT_TYPE = "video/mp4"
MP4_EXTENSION = ".mp4"
CHUNK_SIZE = 1024 * 1024


# ─────────────────────────────────────────────────────────────────────────────
# 🧾 Types
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AssetSummary:
    filename: str
    size: int
    created: datetime
    has_metadata: bool

    @property
    def metadata_filename(self) -> str:
        return metadata_name_for(self.filename)


@dataclass(frozen=True)
class UploadResult:
    filename: str
    original_name: Optional[str]
    size: int
    metadata_filename: Optional[str]
    expiration: str


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Pure helpers
# ─────────────────────────────────────────────────────────────────────────────
def asset_name(number: int) -> str:
    return f"video{number}.mp4"


def metadata_name_for(filename: str) -> str:
    return filename[: -len(MP4_EXTENSION)] + ".xml" if filename.endswith(MP4_EXTENSION) else filename


def allocate_identity(existing: Iterable[str], *, limit: Optional[int] = None) -> Optional[str]:
    """
    Smallest `videoN.mp4` whose number is not used by `existing`.

    Names that do not follow the pattern are ignored. Returns None when every
    number up to `limit` is taken.
    """
    used: Set[int] = set()
    for name in existing:
        m = ASSET_NAME_RE.match(name)
        if m:
            used.add(int(m.group(1)))
    n = 1
    while n in used:
        n += 1
    if limit is not None and n > limit:
        return None
    return asset_name(n)


def is_mp4(content_type: Optional[str], filename_hint: Optional[str]) -> bool:
    """Accept when either the declared type or the extension says MPEG-4."""
    ct = (content_type or "").split(";")[0].strip().lower()
    return ct == MP4_CONTENT_TYPE or Path(filename_hint or "").suffix.lower() == MP4_EXTENSION


def validate_asset_name(filename: Optional[str]) -> str:
    if not filename or not ASSET_NAME_RE.match(filename):
        raise InvalidArgument(
            "Invalid file name. Use the videoN.mp4 pattern",
            details={"filename": filename},
        )
    return filename


def validate_metadata_name(filename: Optional[str]) -> str:
    if not filename or not METADATA_NAME_RE.match(filename):
        raise InvalidArgument(
            "Invalid metadata file name. Use the videoN.xml pattern",
            details={"filename": filename},
        )
    return filename


def parse_positive_days(value) -> int:
    """Day counts arrive as JSON numbers or strings; only positive integers pass."""
    days: Optional[int] = None
    if isinstance(value, bool) or value is None:
        days = None
    elif isinstance(value, int):
        days = value
    elif isinstance(value, float) and value.is_integer():
        days = int(value)
    elif isinstance(value, str) and re.fullmatch(r"\s*\+?\d+\s*", value):
        days = int(value)
    if days is None or days <= 0:
        raise InvalidArgument("expirationDays must be a positive integer", details={"expirationDays": value})
    return days


# ─────────────────────────────────────────────────────────────────────────────
# 🗄️ Store
# ─────────────────────────────────────────────────────────────────────────────
class AssetStore:
    """Single-directory asset store. One instance per backend process."""

    def __init__(
        self,
        root: Path,
        *,
        max_assets: int = 100,
        max_upload_bytes: int = 100 * 1024 * 1024,
        default_validity_days: int = DEFAULT_VALIDITY_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.root = Path(root)
        self.max_assets = max_assets
        self.max_upload_bytes = max_upload_bytes
        self.default_validity_days = default_validity_days
        self._clock = clock

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    # ── Upload ──────────────────────────────────────────────────────────────
    def upload(
        self,
        stream: BinaryIO,
        *,
        filename_hint: Optional[str] = None,
        content_type: Optional[str] = None,
        raw_policy: Optional[str] = None,
    ) -> UploadResult:
        """
        Persist one payload and its metadata.

        Steps
        -----
        1) Reject non-MPEG-4 payloads (`InvalidFormat`).
        2) Resolve the policy; a day count past the calendar is `InvalidArgument`.
        3) Claim the next free identity (`StoreFull` when the space is exhausted).
        4) Stream the payload; past the ceiling the partial file is removed (`TooLarge`).
        5) Write metadata. A failure here leaves the asset without metadata,
           which readers treat as "no expiration".
        """
        if not is_mp4(content_type, filename_hint):
            raise InvalidFormat(
                "Only .mp4 files are allowed",
                details={"content_type": content_type, "filename": filename_hint},
            )

        now = self._clock()
        expiration = self._resolve(raw_policy, now, default_days=self.default_validity_days)

        self.ensure_root()
        filename, fh = self._claim_slot()
        path = self.root / filename
        size = 0
        try:
            with fh:
                for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
                    size += len(chunk)
                    if size > self.max_upload_bytes:
                        raise TooLarge(
                            f"File exceeds the {self.max_upload_bytes} byte limit",
                            details={"limit": self.max_upload_bytes},
                        )
                    fh.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        metadata_filename: Optional[str] = metadata_name_for(filename)
        try:
            self._write_metadata(metadata_filename, codec.encode(filename, now, expiration))
        except OSError:
            logger.warning("Metadata write failed for %s; asset kept without metadata", filename, exc_info=True)
            metadata_filename = None

        logger.info("Video saved as %s (%s bytes, expires %s)", filename, size, expiration)
        return UploadResult(
            filename=filename,
            original_name=filename_hint,
            size=size,
            metadata_filename=metadata_filename,
            expiration=expiration,
        )

    @staticmethod
    def _resolve(raw_policy, now: datetime, **kwargs) -> str:
        try:
            return resolve_marker(raw_policy, now, **kwargs)
        except OverflowError:
            raise InvalidArgument(
                "Expiration is out of the supported date range",
                details={"prazoValidade": raw_policy},
            ) from None

    def _claim_slot(self) -> Tuple[str, BinaryIO]:
        taken = {p.name for p in self.root.iterdir() if ASSET_NAME_RE.match(p.name)}
        while True:
            filename = allocate_identity(taken, limit=self.max_assets)
            if filename is None:
                raise StoreFull(
                    f"No free video slot (limit {self.max_assets})",
                    details={"limit": self.max_assets},
                )
            try:
                return filename, open(self.root / filename, "xb")
            except FileExistsError:
                taken.add(filename)

    # ── List ────────────────────────────────────────────────────────────────
    def list(self) -> List[AssetSummary]:
        """Probe the bounded identity space in order; gaps are skipped."""
        out: List[AssetSummary] = []
        for n in range(1, self.max_assets + 1):
            filename = asset_name(n)
            try:
                st = (self.root / filename).stat()
            except FileNotFoundError:
                continue
            created = getattr(st, "st_birthtime", None) or st.st_mtime
            out.append(
                AssetSummary(
                    filename=filename,
                    size=st.st_size,
                    created=datetime.fromtimestamp(created, tz=timezone.utc),
                    has_metadata=(self.root / metadata_name_for(filename)).is_file(),
                )
            )
        return out

    # ── Delete ──────────────────────────────────────────────────────────────
    def delete(self, filename: str) -> None:
        validate_asset_name(filename)
        path = self.root / filename
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFound("Video not found", details={"filename": filename}) from None

        metadata_filename = metadata_name_for(filename)
        try:
            (self.root / metadata_filename).unlink(missing_ok=True)
        except OSError:
            logger.warning("Video %s deleted but metadata %s could not be removed", filename, metadata_filename, exc_info=True)
        logger.info("Video deleted: %s", filename)

    # ── Update validity ─────────────────────────────────────────────────────
    def update_validity(self, filename: str, days) -> str:
        """
        Set expiration to `today + days`. Existing metadata is patched in
        place; a missing sidecar is synthesized from scratch.
        """
        validate_asset_name(filename)
        days = parse_positive_days(days)

        now = self._clock()
        marker = self._resolve(days, now)
        metadata_filename = metadata_name_for(filename)
        path = self.root / metadata_filename
        try:
            current = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            current = None

        if current is None:
            document = codec.encode(filename, now, marker)
        else:
            try:
                document = codec.rewrite_expiration(current, marker)
            except codec.MalformedMetadata:
                logger.warning("Metadata %s unpatchable; rewriting it", metadata_filename)
                document = codec.encode(filename, now, marker)

        self.ensure_root()
        self._write_metadata(metadata_filename, document)
        logger.info("Validity of %s set to %s (%s days)", filename, marker, days)
        return marker

    # ── Fetch ───────────────────────────────────────────────────────────────
    def payload_path(self, filename: str) -> Path:
        validate_asset_name(filename)
        path = self.root / filename
        if not path.is_file():
            raise NotFound("Video not found", details={"filename": filename})
        return path

    def metadata_path(self, filename: str) -> Path:
        validate_metadata_name(filename)
        path = self.root / filename
        if not path.is_file():
            raise NotFound("Metadata file not found", details={"filename": filename})
        return path

    def read_metadata(self, filename: str) -> bytes:
        return self.metadata_path(filename).read_bytes()

    def _write_metadata(self, metadata_filename: str, document: str) -> None:
        (self.root / metadata_filename).write_text(document, encoding="utf-8")


__all__ = [
    "AssetStore",
    "AssetSummary",
    "UploadResult",
    "allocate_identity",
    "is_mp4",
    "metadata_name_for",
    "parse_positive_days",
    "validate_asset_name",
    "validate_metadata_name",
]
