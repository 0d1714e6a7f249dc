# tests/helpers.py
"""Shared constants for tests (fixed clock, store address, a tiny MP4 payload)."""

from datetime import datetime, timezone

FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
STORE_BASE_URL = "http://tv1.local:3000"

# Smallest thing that looks like an MPEG-4 file to the store (it only checks type/extension)
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + b"\x00" * 64
