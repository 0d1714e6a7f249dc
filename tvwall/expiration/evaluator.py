from __future__ import annotations

"""
Expiration Evaluator
====================

Pure date arithmetic behind an asset's validity:

- `resolve_marker`  turns an upload policy (day count, date string or nothing)
  into the absolute marker persisted in the sidecar document.
- `remaining_days`  derives whole days left from a marker and "now". Both
  sides are truncated to calendar dates first, so time of day never matters.
  Zero or less means expired; the expiration date itself counts as expired.
- `validity_band`   buckets a remaining-days value the way the console shows it.

Remaining validity is never stored. Callers recompute it with a fresh "now"
every time because the clock advances independently of any write.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

DEFAULT_VALIDITY_DAYS = 30
EXPIRING_SOON_DAYS = 7

_DAY_COUNT_RE = re.compile(r"^\d+$")

Instant = Union[datetime, date]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_date(value: Instant) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def format_marker(value: Instant) -> str:
    """Date-only `YYYY-MM-DD` form of an instant."""
    return _as_date(value).isoformat()


def is_day_count(raw_policy: Union[str, int, None]) -> bool:
    """True for non-negative integers given as int or as text."""
    if isinstance(raw_policy, bool):
        return False
    if isinstance(raw_policy, int):
        return raw_policy >= 0
    if isinstance(raw_policy, str):
        return bool(_DAY_COUNT_RE.match(raw_policy.strip()))
    return False


def resolve_marker(
    raw_policy: Union[str, int, None],
    reference: Instant,
    *,
    default_days: int = DEFAULT_VALIDITY_DAYS,
) -> str:
    """
    Resolve an upload policy to the absolute marker that gets persisted.

    - non-negative day count → `reference + days`, date-truncated
    - absent/blank           → `reference + default_days`
    - anything else          → passed through untouched; an invalid date
      surfaces later as "no expiration marker" when it is read back
    """
    if raw_policy is None or (isinstance(raw_policy, str) and not raw_policy.strip()):
        return format_marker(_as_date(reference) + timedelta(days=default_days))
    if is_day_count(raw_policy):
        return format_marker(_as_date(reference) + timedelta(days=int(str(raw_policy).strip())))
    return str(raw_policy)


def parse_marker(text: Optional[str]) -> Optional[date]:
    """
    Parse a persisted marker. Accepts `YYYY-MM-DD` and full ISO-8601
    instants (the date part is kept). Returns None when unparseable.
    """
    s = (text or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def remaining_days(expiration: Instant, now: Instant) -> int:
    """Whole days from `now`'s date until the expiration date (may be negative)."""
    return (_as_date(expiration) - _as_date(now)).days


def validity_band(days: Optional[int]) -> str:
    """`unknown` | `expired` | `expiring` | `valid`."""
    if days is None:
        return "unknown"
    if days <= 0:
        return "expired"
    if days <= EXPIRING_SOON_DAYS:
        return "expiring"
    return "valid"


__all__ = [
    "DEFAULT_VALIDITY_DAYS",
    "format_marker",
    "is_day_count",
    "parse_marker",
    "remaining_days",
    "resolve_marker",
    "utcnow",
    "validity_band",
]
