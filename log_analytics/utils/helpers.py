"""
Helper Functions

This module contains utility functions used throughout the application.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Hashable, List, Optional, Tuple

from dateutil import parser as dtparser


def parse_ts(x: Any) -> Optional[datetime]:
    """Parse timestamp from various formats"""
    if not x:
        return None
    try:
        dt = dtparser.isoparse(str(x))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def parse_status(text: str) -> int:
    """Strict status code conversion; raises ValueError on anything but ASCII digits"""
    s = text.strip()
    if not (s.isascii() and s.isdigit()):
        raise ValueError(f"invalid status code {text!r}")
    return int(s)


def minute_bucket(timestamp: str, prefix_length: int = 16) -> str:
    """
    Truncate a fixed-width timestamp to its minute prefix.
    "2024-02-01 10:15:42" -> "2024-02-01 10:15"
    """
    return timestamp[:prefix_length]


def rank_counts(counts: Dict[Hashable, int]) -> List[Tuple[Any, int]]:
    """
    Order (key, count) pairs by count descending.
    Dicts keep insertion order and sorted() is stable, so equal counts
    stay in first-seen order.
    """
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
