from __future__ import annotations

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from workload.cli import coerce_value
from workload.filters import ALL
from workload.kinds import TASK_CATEGORIES
from workload.model import Notification, NotificationKind, Record
from workload.module import PICTURE_FIELD, EntityModule, Session
from workload.reports import (
    build_snapshot,
    dashboard_metrics,
    fairness,
    known_departments,
    workload_distribution,
    write_snapshot,
)
from workload.uploads import UploadedFile

console = Console()

# Fields asked for in the add/edit form, in order.
FORM_FIELDS: dict[str, list[str]] = {
    "staff": ["staffId", "name", "email", "department", "position", "teachingHours", "researchHours", "totalHours"],
    "course": [
        "courseId",
        "courseCode",
        "courseName",
        "department",
        "semester",
        "credits",
        "contactHours",
        "requiredQualification",
        "description",
    ],
    "task": [
        "taskId",
        "taskName",
        "description",
        "category",
        "hoursNeeded",
        "noOfStaff",
        "department",
        "programme",
        "module",
    ],
}

_STYLES = {
    NotificationKind.SUCCESS: "bold green",
    NotificationKind.ERROR: "bold red",
    NotificationKind.DELETE: "bold magenta",
}


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    # prompts are plain text; "[blank = back]" and stored values are not markup
    return console.input(escape(msg))


def _safe_str(x: Any) -> str:
    return "" if x is None else str(x)


def _show_notification(note: Notification) -> None:
    icon = {"success": "✔", "error": "✖", "delete": "🗑"}[note.kind.value]
    console.print(f"[{_STYLES[note.kind]}]{icon} {escape(note.text)}[/]")


def _pick_int(msg: str) -> Optional[int]:
    raw = _prompt(msg).strip()
    if not raw:
        return None
    if not raw.isdigit():
        _println("Not a number.")
        return None
    return int(raw)


def run_interactive(session: Session) -> None:
    """
    Interactive menu loop over the three modules and the dashboard.
    """
    while True:
        who = session.identity or "(no email)"
        _println("\n=== Workload (interactive) ===")
        _println(f"Signed in as: [bold]{session.role.value}[/] | {escape(who)}")

        choice = _prompt(
            "\n[1] Staff\n"
            "[2] Courses\n"
            "[3] Tasks\n"
            "[4] Dashboard\n"
            "[0] Exit\n"
            "Select: "
        ).strip()

        if choice == "0":
            session.close()
            _println("Bye.")
            return

        if choice in ("1", "2", "3"):
            kind = {"1": "staff", "2": "course", "3": "task"}[choice]
            _run_module(session.module(kind))
        elif choice == "4":
            _flow_dashboard(session)
        else:
            _println("Invalid choice.")


def _run_module(module: EntityModule) -> None:
    module.notifier.subscribe(_show_notification)
    try:
        while True:
            _print_table(module)

            options = ["[1] Search", "[2] Filter", "[3] View details", "[4] Add", "[5] Edit", "[6] Delete"]
            if module.kind.name == "staff":
                options.append("[7] Upload profile picture")
            options += ["[8] Clear filters", "[9] Export table", "[0] Back"]
            choice = _prompt("\n" + "\n".join(options) + "\nSelect: ").strip()

            if choice == "0":
                module.show_list()
                return
            if choice == "1":
                module.set_query(_prompt("Search text [blank = clear]: ").strip())
            elif choice == "2":
                _flow_filter(module)
            elif choice == "3":
                _flow_view(module)
            elif choice == "4":
                if module.start_add():
                    _flow_form(module)
            elif choice == "5":
                rid = _pick_int("Record # to edit [blank = back]: ")
                if rid is not None and module.start_edit(rid):
                    _flow_form(module)
            elif choice == "6":
                _flow_delete(module)
            elif choice == "7" and module.kind.name == "staff":
                _flow_upload(module)
            elif choice == "8":
                module.clear_filters()
            elif choice == "9":
                _flow_export(module)
            else:
                _println("Invalid choice.")
    finally:
        module.notifier.close()


def _print_table(module: EntityModule) -> None:
    rows = module.visible
    active = module.criteria.active()
    title = f"{module.kind.label} list ({len(rows)} of {len(module.records)})"
    if active:
        title += " – " + ", ".join(f"{k}={escape(str(v))}" for k, v in active.items())

    table = Table(title=title, box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("ID", style="bold cyan")
    table.add_column("Name")
    for name in module.kind.filter_fields:
        table.add_column(name.capitalize(), style="green")

    for r in rows:
        cells = [str(r.id), escape(r.secondary_id), escape(module.kind.title_of(r)) or "(no name)"]
        cells += [escape(_safe_str(r.get(name))) for name in module.kind.filter_fields]
        table.add_row(*cells)
    console.print(table)


def _flow_filter(module: EntityModule) -> None:
    fields = list(module.kind.filter_fields)
    if len(fields) == 1:
        name = fields[0]
    else:
        for i, f in enumerate(fields, start=1):
            _println(f"{i}) {f}")
        pick = _pick_int("Filter by [blank = back]: ")
        if pick is None or not (1 <= pick <= len(fields)):
            return
        name = fields[pick - 1]

    options = module.filter_options(name)
    for i, opt in enumerate(options, start=1):
        _println(f"{i}) {escape(opt)}")
    pick = _pick_int(f"{name.capitalize()} [blank = All]: ")
    if pick is None:
        module.set_filter(name, ALL)
    elif 1 <= pick <= len(options):
        module.set_filter(name, options[pick - 1])
    else:
        _println("Out of range.")


def _flow_view(module: EntityModule) -> None:
    rid = _pick_int("Record # to view [blank = back]: ")
    if rid is None:
        return
    record = module.view_record(rid)
    if record is None:
        return
    _print_detail(module, record)
    _prompt("\nPress Enter to go back...")
    module.show_list()


def _print_detail(module: EntityModule, record: Record) -> None:
    table = Table(title=f"{module.kind.label} details", box=box.SIMPLE, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in record.to_dict(module.kind).items():
        if key == PICTURE_FIELD:
            value = "[green]uploaded[/]" if value else "(none)"
        table.add_row(escape(key), value if key == PICTURE_FIELD else escape(_safe_str(value)) or "N/A")
    console.print(table)


def _flow_form(module: EntityModule) -> None:
    """
    Ask for every form field. Blank input keeps the shown value.
    """
    values = module.form_values()
    heading = "Edit" if module.editing is not None else "Add"
    _println(f"\n=== {heading} {module.kind.label} ===")
    if module.kind.name == "task":
        _println(f"Categories: {', '.join(TASK_CATEGORIES)}")

    draft: dict[str, Any] = {}
    for name in FORM_FIELDS[module.kind.name]:
        current = _safe_str(values.get(name))
        marker = " *" if name in module.kind.required else ""
        raw = _prompt(f"{name}{marker} [{current}]: ").strip()
        if raw:
            draft[name] = coerce_value(raw)
        elif current:
            draft[name] = values.get(name)

    if not Confirm.ask("Save?", default=True, console=console):
        module.cancel_form()
        _println("Cancelled.")
        return
    module.submit(draft)


def _flow_delete(module: EntityModule) -> None:
    rid = _pick_int("Record # to delete [blank = back]: ")
    if rid is None:
        return
    token = module.request_delete(rid)
    if token is None:
        return
    record = module.find(rid)
    label = module.kind.title_of(record) if record is not None else str(rid)
    if Confirm.ask(f"Are you sure you want to delete {escape(label)}?", default=False, console=console):
        module.confirm_delete(token)
    else:
        module.cancel_delete(token)
        _println("Cancelled.")


def _flow_upload(module: EntityModule) -> None:
    own = module.own_record()
    default_id = own.id if own is not None else None
    hint = f" [blank = {default_id}]" if default_id is not None else ""
    raw = _prompt(f"Staff #{hint}: ").strip()
    if raw and not raw.isdigit():
        _println("Not a number.")
        return
    rid = int(raw) if raw else default_id
    if rid is None:
        return

    path_in = _prompt("Image file path: ").strip().strip('"')
    if not path_in:
        return
    try:
        upload = UploadedFile.from_path(path_in)
    except OSError as exc:
        _println(f"Cannot read file: {escape(str(exc))}")
        return
    module.upload_picture(rid, upload)


def _flow_export(module: EntityModule) -> None:
    default_name = f"{module.kind.name}-report.json"
    out_in = _prompt(f"Output file [{default_name}]: ").strip()
    out_path = out_in or default_name

    snapshot = build_snapshot(module.kind.name, module.visible, module.criteria.active())
    n = write_snapshot(snapshot, out_path)
    _println(f"Exported {n} rows to: {escape(out_path)}")


def _flow_dashboard(session: Session) -> None:
    staff = session.module("staff").records
    courses = session.module("course").records
    tasks = session.module("task").records

    metrics = dashboard_metrics(staff, courses, tasks)
    table = Table(title="Key metrics", box=box.SIMPLE, show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    for key, value in metrics.items():
        table.add_row(key, f"[yellow]{value}[/]")
    console.print(table)

    stats = fairness(staff)
    bands = {b["name"]: b["band"] for b in stats.bands}
    dist = Table(title=f"Workload (average {stats.average:.1f}h, std dev {stats.std_dev:.1f})", box=box.SIMPLE)
    dist.add_column("Staff")
    dist.add_column("Hours/week", justify="right")
    dist.add_column("Capacity", justify="right")
    dist.add_column("Fairness")
    for row in workload_distribution(staff):
        dist.add_row(escape(row["name"]), f"{row['workload']:g}", f"{row['capacity']:g}", bands.get(row["name"], ""))
    console.print(dist)

    _println("Departments: " + ", ".join(escape(d) for d in known_departments(staff, courses)))
    _prompt("\nPress Enter to go back...")
