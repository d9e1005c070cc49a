"""
Sequential identifiers.

Both generators look only at the current collection: they take the
current maximum and add one. Nothing is cached between mutations, so
after the highest record is deleted its number is handed out again.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

_DIGITS = re.compile(r"\d+")


def extract_number(secondary_id: Any) -> int:
    """
    Return the first run of digits in ``secondary_id`` as an int.
    'COURSE012' -> 12, 'T4b7' -> 4, 'none' / None -> 0
    """
    if not isinstance(secondary_id, str):
        return 0
    m = _DIGITS.search(secondary_id)
    return int(m.group(0)) if m else 0


def next_id(ids: Iterable[int]) -> int:
    """max(ids) + 1, or 1 for an empty collection."""
    return max(ids, default=0) + 1


def next_secondary_id(secondary_ids: Iterable[Any], prefix: str, width: int = 3) -> str:
    """
    Next formatted code in a namespace:
    ['STAFF001', 'STAFF007'] -> 'STAFF008', [] -> 'STAFF001'

    Numbers wider than ``width`` are kept in full (T1000 follows T999).
    """
    highest = max((extract_number(s) for s in secondary_ids), default=0)
    return f"{prefix}{highest + 1:0{width}d}"
