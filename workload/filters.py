"""
Filtering of a collection into the displayed subset.

Criteria are independent predicates combined with AND:
- equality on named fields; the sentinel "All" switches one off
- one case-insensitive substring query over a fixed list of fields

``apply_filters`` is a pure function: it is simply called again whenever
the collection or a criterion changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Sequence

from workload.model import Record

ALL = "All"


@dataclass(frozen=True)
class FilterCriteria:
    equals: dict[str, str] = field(default_factory=dict)
    query: str = ""
    search_fields: tuple[str, ...] = ()

    def with_equal(self, name: str, value: str) -> "FilterCriteria":
        equals = dict(self.equals)
        equals[name] = value
        return replace(self, equals=equals)

    def with_query(self, query: str) -> "FilterCriteria":
        return replace(self, query=query or "")

    def active(self) -> dict[str, Any]:
        """Only the predicates that actually narrow the result."""
        out: dict[str, Any] = {k: v for k, v in self.equals.items() if v != ALL}
        if self.query.strip():
            out["query"] = self.query.strip()
        return out


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def matches(record: Record, criteria: FilterCriteria) -> bool:
    for name, wanted in criteria.equals.items():
        if wanted == ALL:
            continue
        if _text(record.get(name)) != wanted:
            return False

    query = criteria.query.strip().lower()
    if query:
        hay = [_text(record.get(f)).lower() for f in criteria.search_fields]
        if not any(query in h for h in hay):
            return False

    return True


def apply_filters(records: Sequence[Record], criteria: FilterCriteria) -> list[Record]:
    """New list of the records matching every active predicate, in original order."""
    return [r for r in records if matches(r, criteria)]


def filter_options(records: Iterable[Record], name: str) -> list[str]:
    """
    Values for an equality filter dropdown:
    ["All", <distinct non-empty values in first-seen order>]
    """
    seen: list[str] = []
    for r in records:
        v = _text(r.get(name)).strip()
        if v and v not in seen:
            seen.append(v)
    return [ALL, *seen]
