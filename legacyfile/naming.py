"""Naming convention shared by the snapshot writer and consolidator.

Snapshots are named ``{base}_legacy_{YYYYMMDDHHmmss}``; consolidated
records are named ``{base}_legacy_{start}-{end}``. Timestamps are fixed
width and zero padded, so string order equals chronological order.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Iterable, Sequence, TypeVar

LEGACY_MARKER = "_legacy_"

# File extension for every snapshot and record written to the archive
ENTRY_SUFFIX = ".md"

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# Fallback for names without a parseable timestamp suffix
MIN_TIMESTAMP = "00000000000000"

SORT_ORDERS = ("ascending", "descending")

# Matches the timestamp suffix: "note_legacy_20241215103045"
TIMESTAMP_SUFFIX_RE = re.compile(r'_legacy_([0-9]{14})\Z')

T = TypeVar("T")


def format_timestamp(moment: datetime | None = None) -> str:
    """Format *moment* (default: now, local time) as ``YYYYMMDDHHmmss``."""
    moment = moment or datetime.now()
    return moment.strftime(TIMESTAMP_FORMAT)


def snapshot_name(base_name: str, timestamp: str) -> str:
    return f"{base_name}{LEGACY_MARKER}{timestamp}"


def record_name(base_name: str, start: str, end: str) -> str:
    return f"{base_name}{LEGACY_MARKER}{start}-{end}"


def snapshot_pattern(base_name: str) -> re.Pattern[str]:
    """Build the exact-match pattern for one document's snapshots.

    The base name is escaped, so names like ``a+b`` or ``notes (old)``
    match only themselves.
    Only ASCII digits count and the name must end right after them.
    """
    return re.compile(rf'^{re.escape(base_name)}_legacy_[0-9]{{14}}\Z')


def record_pattern(base_name: str) -> re.Pattern[str]:
    """Build the exact-match pattern for one document's consolidated records."""
    return re.compile(rf'^{re.escape(base_name)}_legacy_[0-9]{{14}}-[0-9]{{14}}\Z')


def extract_timestamp(name: str) -> str:
    """Extract the 14-digit timestamp suffix from a snapshot name.

    Returns :data:`MIN_TIMESTAMP` when the name has no such suffix.
    """
    m = TIMESTAMP_SUFFIX_RE.search(name)
    return m.group(1) if m else MIN_TIMESTAMP


def validate_sort_order(order: str) -> str:
    if order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order '{order}'; expected one of {list(SORT_ORDERS)}")
    return order


def sort_timestamped(
    items: Iterable[T],
    order: str,
    key: Callable[[T], str] | None = None,
) -> list[T]:
    """Sort *items* by timestamp string in the given direction.

    The sort is stable, so items sharing a timestamp keep their
    relative input order in both directions.

    Parameters
    ----------
    items:
        Items to sort.
    order:
        ``ascending`` or ``descending``.
    key:
        Returns the 14-digit timestamp of an item. Defaults to the item
        itself, for sorting plain timestamp strings.
    """
    validate_sort_order(order)
    if key is None:
        key = str
    return sorted(items, key=key, reverse=(order == "descending"))


def timestamp_range(timestamps: Sequence[str]) -> tuple[str, str]:
    """Return (first, last) of *timestamps* as given, not min/max.

    Under descending order the first timestamp is the latest one.
    """
    if not timestamps:
        raise ValueError("Cannot build a timestamp range from no timestamps")
    return timestamps[0], timestamps[-1]
