"""
CLI (Command Line Interface).

Quick terminal commands for administrators, staff and scripts, e.g.:

    workload list staff --department "Computer Science"
    workload show course 3
    workload add task taskName="Mark exams" description="Week 12 exams"
    workload edit staff 2 department=Physics
    workload delete course 4 --yes
    workload --role Staff --email a@x.edu photo 1 me.png
    workload metrics
    workload export staff out.json
    workload interactive

Every command runs through the same entity modules as the interactive
UI, so role checks and persistence behave identically. A command whose
operation ends in an error notification exits with code 1.
"""

from __future__ import annotations

import argparse
import logging
import re
from pathlib import Path
from typing import Any, Optional

from rich.logging import RichHandler

from workload.config import Settings, load_settings
from workload.kinds import KINDS
from workload.model import NotificationKind, Record
from workload.module import EntityModule, Session
from workload.reports import build_snapshot, dashboard_metrics, fairness, known_departments, write_snapshot
from workload.storage import JsonStore
from workload.uploads import UploadedFile

FILTER_FLAGS = ("department", "semester", "category")

_NUMBER = re.compile(r"-?(0|[1-9]\d*)(\.\d+)?")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def coerce_value(value: str) -> Any:
    """
    '12' -> 12, '3.5' -> 3.5, anything else stays a string.
    Codes with leading zeros ('0123') and 'NaN'/'Infinity' are kept as text.
    """
    v = value.strip()
    if not _NUMBER.fullmatch(v):
        return v
    return float(v) if "." in v else int(v)


def _parse_assignments(items: list[str]) -> dict[str, Any]:
    """
    Turn ['name=Dr. X', 'teachingHours=12'] into a field dict.
    Raises ValueError for items without '='.
    """
    out: dict[str, Any] = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Expected field=value, got {item!r}")
        key, value = item.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Missing field name in {item!r}")
        out[key] = coerce_value(value)
    return out


def _record_line(module: EntityModule, record: Record) -> str:
    bits = [f"#{record.id}", record.secondary_id, module.kind.title_of(record) or "(no name)"]
    for name in module.kind.filter_fields:
        value = record.get(name)
        if value not in (None, ""):
            bits.append(str(value))
    return " | ".join(bits)


def _print_notification(module: EntityModule) -> int:
    """Print the module's notification; return the exit code it implies."""
    note = module.notifier.current
    if note is None:
        return 0
    print(note.text)
    return 1 if note.kind is NotificationKind.ERROR else 0


def _apply_filters(module: EntityModule, args: argparse.Namespace) -> Optional[str]:
    """Apply --department/--semester/--category/--search; return an error text if a flag does not fit."""
    for flag in FILTER_FLAGS:
        value = getattr(args, flag, None)
        if value is None:
            continue
        if flag not in module.kind.filter_fields:
            return f"{module.kind.label} records cannot be filtered by {flag}."
        module.set_filter(flag, value)
    if getattr(args, "search", None):
        module.set_query(args.search)
    return None


def _cmd_list(args: argparse.Namespace, session: Session) -> int:
    module = session.module(args.kind)
    problem = _apply_filters(module, args)
    if problem:
        print(problem)
        return 1

    rows = module.visible
    if not rows:
        print("No results.")
        return 0
    for r in rows:
        print(_record_line(module, r))
    print(f"{len(rows)} of {len(module.records)} {module.kind.plural}")
    return 0


def _cmd_show(args: argparse.Namespace, session: Session) -> int:
    module = session.module(args.kind)
    record = module.view_record(args.id)
    if record is None:
        return _print_notification(module)

    for key, value in record.to_dict(module.kind).items():
        if isinstance(value, str) and value.startswith("data:"):
            value = f"(image, {len(value)} chars)"
        print(f"{key}: {value}")
    return 0


def _cmd_add(args: argparse.Namespace, session: Session) -> int:
    module = session.module(args.kind)
    try:
        draft = _parse_assignments(args.fields)
    except ValueError as exc:
        print(str(exc))
        return 1

    if not module.start_add():
        return _print_notification(module)
    record = module.submit(draft)
    code = _print_notification(module)
    if record is not None:
        print(_record_line(module, record))
    return code


def _cmd_edit(args: argparse.Namespace, session: Session) -> int:
    module = session.module(args.kind)
    try:
        changes = _parse_assignments(args.fields)
    except ValueError as exc:
        print(str(exc))
        return 1

    if not module.start_edit(args.id):
        return _print_notification(module)
    record = module.submit(changes)
    code = _print_notification(module)
    if record is not None:
        print(_record_line(module, record))
    return code


def _cmd_delete(args: argparse.Namespace, session: Session) -> int:
    module = session.module(args.kind)

    def confirm(record: Record) -> bool:
        if args.yes:
            return True
        label = module.kind.title_of(record) or record.secondary_id
        answer = input(f"Are you sure you want to delete {label} ({record.secondary_id})? [y/N]: ")
        return answer.strip().lower() in ("y", "yes")

    deleted = module.delete(args.id, confirm=confirm)
    if not deleted and module.notifier.current is None:
        print("Cancelled.")
        return 0
    return _print_notification(module)


def _cmd_photo(args: argparse.Namespace, session: Session) -> int:
    module = session.module("staff")
    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}")
        return 1

    module.upload_picture(args.id, UploadedFile.from_path(path))
    return _print_notification(module)


def _cmd_metrics(args: argparse.Namespace, session: Session) -> int:
    staff = session.module("staff").records
    courses = session.module("course").records
    tasks = session.module("task").records

    for key, value in dashboard_metrics(staff, courses, tasks).items():
        print(f"{key}: {value}")

    stats = fairness(staff)
    print(f"Average hours/week: {stats.average:.1f} (std dev {stats.std_dev:.1f})")
    for band in stats.bands:
        print(f"- {band['name']}: {band['value']:g}h ({band['band']})")
    return 0


def _cmd_departments(args: argparse.Namespace, session: Session) -> int:
    for name in known_departments(session.module("staff").records, session.module("course").records):
        print(name)
    return 0


def _cmd_export(args: argparse.Namespace, session: Session) -> int:
    module = session.module(args.kind)
    problem = _apply_filters(module, args)
    if problem:
        print(problem)
        return 1

    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .json path.")
        return 1

    snapshot = build_snapshot(module.kind.name, module.visible, module.criteria.active())
    n = write_snapshot(snapshot, out_path)
    print(f"Exported {n} {module.kind.plural} to: {out_path}")
    return 0


def _add_filter_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--department", help="Only records of this department ('All' = no filter)")
    p.add_argument("--semester", help="Only courses of this semester")
    p.add_argument("--category", help="Only tasks of this category")
    p.add_argument("--search", help="Case-insensitive text search")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="workload", description="Workload administration CLI")
    parser.add_argument("--data-dir", help="Directory holding the stored collections")
    parser.add_argument("--role", help="Administrator or Staff (default: $WORKLOAD_ROLE or Administrator)")
    parser.add_argument("--email", help="Email of the signed-in user (default: $WORKLOAD_EMAIL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    kinds = sorted(KINDS)

    p_list = sub.add_parser("list", help="List records")
    p_list.add_argument("kind", choices=kinds)
    _add_filter_flags(p_list)

    p_show = sub.add_parser("show", help="Show one record")
    p_show.add_argument("kind", choices=kinds)
    p_show.add_argument("id", type=int)

    p_add = sub.add_parser("add", help="Add a record (Administrator)")
    p_add.add_argument("kind", choices=kinds)
    p_add.add_argument("fields", nargs="*", help="field=value pairs")

    p_edit = sub.add_parser("edit", help="Edit a record (Administrator)")
    p_edit.add_argument("kind", choices=kinds)
    p_edit.add_argument("id", type=int)
    p_edit.add_argument("fields", nargs="*", help="field=value pairs")

    p_delete = sub.add_parser("delete", help="Delete a record (Administrator)")
    p_delete.add_argument("kind", choices=kinds)
    p_delete.add_argument("id", type=int)
    p_delete.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    p_photo = sub.add_parser("photo", help="Upload a staff profile picture")
    p_photo.add_argument("id", type=int, help="Staff record id")
    p_photo.add_argument("file", help="Image file (max 5MB)")

    sub.add_parser("metrics", help="Show dashboard figures")
    sub.add_parser("departments", help="List known departments")

    p_export = sub.add_parser("export", help="Export the displayed table as JSON")
    p_export.add_argument("kind", choices=kinds)
    p_export.add_argument("out", type=str, help="Output file path (e.g. staff.json)")
    _add_filter_flags(p_export)

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


def open_session(settings: Settings) -> Session:
    return Session(
        JsonStore(settings.data_dir),
        role=settings.role,
        identity=settings.identity,
        notification_ms=settings.notification_ms,
        max_upload_bytes=settings.max_upload_bytes,
    )


_COMMANDS = {
    "list": _cmd_list,
    "show": _cmd_show,
    "add": _cmd_add,
    "edit": _cmd_edit,
    "delete": _cmd_delete,
    "photo": _cmd_photo,
    "metrics": _cmd_metrics,
    "departments": _cmd_departments,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(data_dir=args.data_dir, role=args.role, email=args.email)
    except ValueError as exc:
        parser.error(str(exc))

    session = open_session(settings)

    if args.command == "interactive":
        from workload.interactive import run_interactive

        run_interactive(session)
        raise SystemExit(0)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)
    try:
        raise SystemExit(handler(args, session))
    finally:
        session.close()
