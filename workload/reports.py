"""
Aggregate figures and export snapshots.

Charts and document exports are done by other tools; this module only
hands them plain numbers, lists and dicts:
- dashboard totals and per-staff workload figures
- fairness statistics (mean / population std deviation, per-staff band)
- a self-describing snapshot of the currently displayed table, written
  as JSON for the export tool
"""

from __future__ import annotations

import json
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Sequence

from workload.kinds import DEFAULT_DEPARTMENTS
from workload.model import Record

DEFAULT_CAPACITY = 20.0


def _number(value: Any) -> float:
    """Numeric value of a stored field ('40', 12, 3.5); anything else counts as 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def staff_hours(record: Record) -> float:
    """Weekly hours of a staff member: totalHours, else teaching + research."""
    total = record.get("totalHours")
    if total is not None:
        return _number(total)
    return _number(record.get("teachingHours")) + _number(record.get("researchHours"))


def staff_status(record: Record) -> str:
    """'overload' above maxHoursWeek (default 20), 'underload' below minHoursWeek, else 'normal'."""
    hours = staff_hours(record)
    capacity = _number(record.get("maxHoursWeek")) or DEFAULT_CAPACITY
    minimum = _number(record.get("minHoursWeek"))
    if hours > capacity:
        return "overload"
    if minimum and hours < minimum:
        return "underload"
    return "normal"


def dashboard_metrics(
    staff: Sequence[Record], courses: Sequence[Record], tasks: Sequence[Record]
) -> dict[str, Any]:
    hours = [staff_hours(r) for r in staff]
    return {
        "totalStaff": len(staff),
        "totalCourses": len(courses),
        "totalTasks": len(tasks),
        "totalStaffHours": sum(hours),
        "averageStaffHours": round(sum(hours) / len(hours), 2) if hours else 0.0,
        "totalTaskHours": sum(_number(t.get("hoursNeeded")) for t in tasks),
        "overloadedStaff": sum(1 for r in staff if staff_status(r) == "overload"),
    }


def workload_distribution(staff: Sequence[Record], capacity: float = DEFAULT_CAPACITY) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for r in staff:
        cap = _number(r.get("maxHoursWeek")) or capacity
        out.append({"name": _text(r.get("name")), "workload": staff_hours(r), "capacity": cap})
    return out


@dataclass
class FairnessStats:
    average: float
    std_dev: float
    bands: list[dict[str, Any]] = field(default_factory=list)


def _band(value: float, average: float, std_dev: float) -> str:
    deviation = abs(value - average)
    threshold = std_dev or 1.0
    if deviation <= threshold * 0.5:
        return "very-fair"
    if deviation <= threshold:
        return "fair"
    if deviation <= threshold * 1.5:
        return "somewhat-unfair"
    return "unfair"


def fairness(staff: Sequence[Record]) -> FairnessStats:
    """
    Mean and population standard deviation of weekly hours, and for each
    staff member a band by distance from the mean in units of std deviation.
    """
    values = [(_text(r.get("name")), staff_hours(r)) for r in staff]
    if not values:
        return FairnessStats(average=0.0, std_dev=0.0)

    average = sum(v for _, v in values) / len(values)
    variance = sum((v - average) ** 2 for _, v in values) / len(values)
    std_dev = math.sqrt(variance)

    bands = [{"name": name, "value": v, "band": _band(v, average, std_dev)} for name, v in values]
    return FairnessStats(average=average, std_dev=std_dev, bands=bands)


def hours_by(records: Iterable[Record], group_field: str, hours_field: str) -> dict[str, float]:
    """Sum ``hours_field`` per value of ``group_field`` (blank groups become 'Unassigned')."""
    totals: dict[str, float] = defaultdict(float)
    for r in records:
        key = _text(r.get(group_field)) or "Unassigned"
        totals[key] += _number(r.get(hours_field))
    return dict(totals)


def known_departments(*collections: Iterable[Record]) -> list[str]:
    """Sorted departments used by any record; the default list when there are none."""
    found = {_text(r.get("department")) for records in collections for r in records}
    found.discard("")
    return sorted(found) if found else list(DEFAULT_DEPARTMENTS)


# ---------------------------------------------------------------------------
# Export snapshots
# ---------------------------------------------------------------------------


@dataclass
class ReportSnapshot:
    kind: str
    filters: dict[str, Any]
    summary: dict[str, Any]
    rows: list[dict[str, Any]]
    generated_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "reportType": self.kind,
            "generatedAt": self.generated_at,
            "filters": self.filters,
            "summary": self.summary,
            "tableData": self.rows,
        }


def _staff_summary(records: Sequence[Record]) -> dict[str, Any]:
    total = sum(staff_hours(r) for r in records)
    teaching = sum(_number(r.get("teachingHours")) for r in records)
    research = sum(_number(r.get("researchHours")) for r in records)
    other = max(total - teaching - research, 0.0)

    def pct(part: float) -> float:
        return round(part * 100.0 / total, 1) if total else 0.0

    return {
        "count": len(records),
        "hoursAssigned": total,
        "teachingPercent": pct(teaching),
        "researchPercent": pct(research),
        "adminPercent": pct(other),
        "overload": any(staff_status(r) == "overload" for r in records),
    }


def build_snapshot(kind_name: str, records: Sequence[Record], filters: dict[str, Any]) -> ReportSnapshot:
    """
    Snapshot of a displayed table: the rows exactly as shown plus summary
    figures suited to the kind.
    """
    if kind_name == "staff":
        summary = _staff_summary(records)
        rows = [
            {
                "staffId": r.secondary_id,
                "staffName": _text(r.get("name")),
                "department": _text(r.get("department")),
                "teachingHours": _number(r.get("teachingHours")),
                "researchHours": _number(r.get("researchHours")),
                "totalHours": staff_hours(r),
                "status": staff_status(r),
            }
            for r in records
        ]
    elif kind_name == "course":
        summary = {
            "count": len(records),
            "totalCredits": sum(_number(r.get("credits")) for r in records),
            "coursesBySemester": _count_by(records, "semester"),
        }
        rows = [
            {
                "courseId": r.secondary_id,
                "courseCode": _text(r.get("courseCode")),
                "courseName": _text(r.get("courseName")),
                "department": _text(r.get("department")),
                "semester": _text(r.get("semester")),
                "credits": _number(r.get("credits")),
            }
            for r in records
        ]
    elif kind_name == "task":
        summary = {
            "count": len(records),
            "hoursNeeded": sum(_number(r.get("hoursNeeded")) for r in records),
            "hoursByCategory": hours_by(records, "category", "hoursNeeded"),
        }
        rows = [
            {
                "taskId": r.secondary_id,
                "taskName": _text(r.get("taskName")),
                "category": _text(r.get("category")),
                "department": _text(r.get("department")),
                "hoursNeeded": _number(r.get("hoursNeeded")),
            }
            for r in records
        ]
    else:
        raise ValueError(f"Unknown report kind: {kind_name!r}")

    return ReportSnapshot(kind=kind_name, filters=dict(filters), summary=summary, rows=rows)


def _count_by(records: Iterable[Record], group_field: str) -> dict[str, int]:
    counts: dict[str, int] = defaultdict(int)
    for r in records:
        counts[_text(r.get(group_field)) or "Unassigned"] += 1
    return dict(counts)


def write_snapshot(snapshot: ReportSnapshot, out_path: str | Path) -> int:
    """
    Write a snapshot as JSON. Returns the number of exported rows.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    return len(snapshot.rows)
