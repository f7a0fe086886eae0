"""
CLI (Command Line Interface).

This module provides terminal commands on top of the derivation core, e.g.:

    classportal login --base-url URL --token TOKEN --student-id ID
    classportal schedule --month 2024-09
    classportal next
    classportal status
    classportal assignments --filter overdue
    classportal can-submit <assignment_id>
    classportal conflicts
    classportal export <file.ics>

Records come from the portal API, or from local JSON files
(--courses-file / --assignments-file) for offline use.
Every command takes --now so the output can be reproduced.
"""

from __future__ import annotations

import argparse
import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table
from rich import box
from rich.markup import escape

from classportal.aggregate import (
    annotate_assignments,
    count_assignments_by_status,
    filter_assignments_by_status,
    filter_assignments_by_type,
    group_by_date,
    next_occurrences,
    schedule_statistics,
    search_assignments,
    search_occurrences,
    sort_assignments_by_due_date,
)
from classportal.client import PortalAPIError, PortalClient
from classportal.config import Settings, resolve_settings
from classportal.conflicts import find_conflicts
from classportal.export_ics import export_occurrences_to_ics
from classportal.materialize import (
    DateRange,
    local_date,
    materialize,
    range_between,
    range_for_day,
    range_for_month,
    range_for_week,
)
from classportal.model import Assignment, AssignmentType, Course, ScheduleOccurrence, ValidationIssue
from classportal.parse import parse_assignments, parse_courses, parse_instant
from classportal.status import course_status_info
from classportal.storage import load_session, save_session

console = Console()

FILTER_CHOICES = ("all", "pending", "submitted", "graded", "overdue")
TYPE_CHOICES = tuple(t.value for t in AssignmentType)

# how far ahead "next" looks for classes
NEXT_LOOKAHEAD_DAYS = 14


class CommandError(Exception):
    """
    A user-facing problem that ends the command with exit code 1.
    """


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------


def _load_records(path: Path, key: str) -> list[dict[str, Any]]:
    """
    Load records from a JSON file: a plain list, or an API envelope
    {"data": [...]} / {"data": {key: [...]}}.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise CommandError(f"Could not read {path}: {exc}") from exc

    if isinstance(data, dict) and "data" in data:
        data = data["data"]
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise CommandError(f"{path} does not contain a list of {key}")
    return [x for x in data if isinstance(x, dict)]


def _warn(issues: list[ValidationIssue]) -> None:
    for issue in issues:
        console.print(f"[yellow]Warning:[/yellow] {escape(str(issue))}", highlight=False)


def _client(settings: Settings) -> PortalClient:
    return PortalClient(settings.base_url, token=settings.token)


def _courses(args: argparse.Namespace, settings: Settings) -> list[Course]:
    if args.courses_file:
        raws = _load_records(Path(args.courses_file), "courses")
    else:
        raws = _client(settings).get_courses()
    courses, issues = parse_courses(raws)
    _warn(issues)
    return courses


def _assignments(args: argparse.Namespace, settings: Settings) -> list[Assignment]:
    if args.assignments_file:
        raws = _load_records(Path(args.assignments_file), "assignments")
    else:
        raws = _client(settings).get_my_assignments()
    assignments, issues = parse_assignments(raws)
    _warn(issues)
    return assignments


def _now(args: argparse.Namespace) -> datetime:
    if not args.now:
        return datetime.now(timezone.utc)
    try:
        return parse_instant(args.now)
    except ValueError as exc:
        raise CommandError(str(exc)) from exc


def _parse_day(text: str) -> date:
    try:
        return date.fromisoformat(text.strip())
    except ValueError as exc:
        raise CommandError(f"Invalid date {text!r} (expected YYYY-MM-DD)") from exc


def _date_range(args: argparse.Namespace, now: datetime, settings: Settings) -> DateRange:
    """
    --date D | --from D --to D | --month YYYY-MM | --week [--date D], default: today.
    """
    if args.week:
        anchor = _parse_day(args.date) if args.date else local_date(now, settings.tz)
        return range_for_week(anchor)
    if args.month:
        try:
            year_s, month_s = args.month.strip().split("-", 1)
            return range_for_month(int(year_s), int(month_s))
        except ValueError as exc:
            raise CommandError(f"Invalid month {args.month!r} (expected YYYY-MM)") from exc
    if args.date_from or args.date_to:
        if not (args.date_from and args.date_to):
            raise CommandError("--from and --to must be given together")
        return range_between(_parse_day(args.date_from), _parse_day(args.date_to))
    if args.date:
        return range_for_day(_parse_day(args.date))
    return range_for_day(local_date(now, settings.tz))


def _student_id(args: argparse.Namespace, settings: Settings) -> str:
    sid = (args.student_id or settings.student_id or "").strip()
    if not sid:
        raise CommandError("No student id: pass --student-id or run 'classportal login'.")
    return sid


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_login(args: argparse.Namespace, settings: Settings) -> int:
    """
    Store base URL / token / student id for later commands.
    """
    session = load_session()
    for key in ("base_url", "token", "student_id"):
        value = getattr(args, key)
        if value is not None:
            session[key] = value
    save_session(session)
    console.print(f"Session saved ({', '.join(sorted(k for k in session if k != 'token'))}).")
    return 0


def _print_day(title: str, items: list[ScheduleOccurrence]) -> None:
    table = Table(title=title, box=box.SIMPLE, title_justify="left")
    table.add_column("Time")
    table.add_column("Code")
    table.add_column("Course")
    table.add_column("Room")
    table.add_column("Instructor")
    table.add_column("Status")
    for occ in items:
        table.add_row(
            f"{occ.start_time}-{occ.end_time}",
            escape(occ.course_code),
            escape(occ.course_name),
            escape(occ.room or occ.location or ""),
            escape(occ.instructor_name or ""),
            occ.course_status.value,
        )
    console.print(table)


def _cmd_schedule(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print occurrences grouped by date.
    """
    now = _now(args)
    date_range = _date_range(args, now, settings)
    occurrences = materialize(_courses(args, settings), date_range, now, tz=settings.tz)
    occurrences = search_occurrences(occurrences, args.search or "")

    if not occurrences:
        console.print("No classes in this period.")
        return 0

    for key, items in group_by_date(occurrences).items():
        _print_day(f"{key} ({items[0].day_of_week.value})", items)

    if args.stats:
        stats = schedule_statistics(occurrences)
        console.print(
            f"classes: {stats.total_classes}  courses: {stats.courses_count}  "
            f"days: {stats.days_with_classes}  per day: {stats.average_per_day:.1f}",
            highlight=False,
        )
    return 0


def _cmd_next(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print the next classes: later today, or on the next day that has any.
    """
    now = _now(args)
    today = local_date(now, settings.tz)
    date_range = range_between(today, today + timedelta(days=NEXT_LOOKAHEAD_DAYS - 1))
    occurrences = materialize(_courses(args, settings), date_range, now, tz=settings.tz)
    nxt = next_occurrences(occurrences, now, tz=settings.tz)
    if nxt is None:
        console.print(f"No classes in the next {NEXT_LOOKAHEAD_DAYS} days.")
        return 0

    label = "today" if nxt.is_today else nxt.occurrences[0].day_of_week.value
    _print_day(f"{nxt.date.isoformat()} ({label})", nxt.occurrences)
    return 0


def _cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print every course with its derived status and day counters.
    """
    now = _now(args)
    courses = _courses(args, settings)
    if not courses:
        console.print("No courses.")
        return 0

    table = Table(box=box.SIMPLE)
    for col in ("Code", "Course", "Status", "Starts in", "Ends in", "Ended", "Days", "Note"):
        table.add_column(col)

    for course in sorted(courses, key=lambda c: (c.start_date, c.code)):
        info = course_status_info(course, now)
        note = ""
        if info.is_starting_soon:
            note = "starting soon"
        elif info.is_ending_soon:
            note = "ending soon"
        elif info.is_recently_ended:
            note = "recently ended"
        table.add_row(
            escape(course.code),
            escape(course.name),
            info.status.value,
            str(info.days_until_start),
            str(info.days_until_end),
            str(info.days_since_end),
            str(info.duration),
            note,
        )
    console.print(table)
    return 0


def _cmd_assignments(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print the viewer's assignments with status, lateness and filter tab counts.
    """
    now = _now(args)
    viewer = _student_id(args, settings)
    views = annotate_assignments(_assignments(args, settings), viewer, now)

    counts = count_assignments_by_status(views)
    console.print("  ".join(f"{k}: {counts[k]}" for k in FILTER_CHOICES), highlight=False)

    shown = filter_assignments_by_status(views, args.filter)
    if args.type:
        shown = filter_assignments_by_type(shown, args.type)
    shown = search_assignments(shown, args.search or "")
    shown = sort_assignments_by_due_date(shown, ascending=not args.desc)

    if not shown:
        console.print("No assignments.")
        return 0

    table = Table(box=box.SIMPLE)
    for col in ("Due", "Title", "Course", "Status", "Late", "Score", "Can submit"):
        table.add_column(col)
    for v in shown:
        a = v.assignment
        score = ""
        if v.submission is not None and v.submission.score is not None:
            score = f"{v.submission.score:g}/{a.max_score:g}"
        table.add_row(
            a.due_date.astimezone(settings.tz).strftime("%Y-%m-%d %H:%M"),
            escape(a.title),
            escape(a.course_code or a.course_name),
            v.status.value,
            "yes" if v.is_late else "",
            score,
            "yes" if v.can_submit.can else "no",
        )
    console.print(table)
    return 0


def _cmd_can_submit(args: argparse.Namespace, settings: Settings) -> int:
    """
    Check submission permission for one assignment, evaluated right now.
    """
    now = _now(args)
    viewer = _student_id(args, settings)
    views = annotate_assignments(_assignments(args, settings), viewer, now)
    for v in views:
        if v.assignment.assignment_id == args.assignment_id:
            verdict = "yes" if v.can_submit.can else "no"
            console.print(f"{verdict}: {v.can_submit.reason} (status: {v.status.value})", markup=False, highlight=False)
            return 0 if v.can_submit.can else 1
    raise CommandError(f"Unknown assignment: {args.assignment_id}")


def _cmd_conflicts(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print all overlapping occurrences in the requested period.
    """
    now = _now(args)
    occurrences = materialize(_courses(args, settings), _date_range(args, now, settings), now, tz=settings.tz)

    confs = find_conflicts(occurrences)
    if not confs:
        console.print("No conflicts found.")
        return 0

    console.print(f"Conflicts found: {len(confs)}")
    for a, b in confs:
        console.print(
            f"- {a.date_key} {a.start_time}-{a.end_time} {a.course_code} {a.course_name}"
            f"  <->  {b.start_time}-{b.end_time} {b.course_code} {b.course_name}",
            markup=False,
            highlight=False,
        )
    return 0


def _cmd_export(args: argparse.Namespace, settings: Settings) -> int:
    """
    Export occurrences of the requested period into an iCalendar (.ics) file.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        raise CommandError("Please provide output .ics path.")

    now = _now(args)
    occurrences = materialize(_courses(args, settings), _date_range(args, now, settings), now, tz=settings.tz)
    if not occurrences:
        console.print("No classes to export.")
        return 0

    n = export_occurrences_to_ics(occurrences, out_path, stamp=now)
    console.print(f"Exported {n} events to: {out_path}", markup=False)
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="classportal", description="Course schedule and assignment status CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--now", type=str, help="Evaluate at this ISO-8601 instant instead of the current time")
    common.add_argument("--courses-file", type=str, help="Read courses from a JSON file instead of the API")
    common.add_argument("--assignments-file", type=str, help="Read assignments from a JSON file instead of the API")

    period = argparse.ArgumentParser(add_help=False)
    period.add_argument("--date", type=str, help="Single day (YYYY-MM-DD)")
    period.add_argument("--from", dest="date_from", type=str, help="Range start (YYYY-MM-DD)")
    period.add_argument("--to", dest="date_to", type=str, help="Range end (YYYY-MM-DD)")
    period.add_argument("--month", type=str, help="Whole month (YYYY-MM)")
    period.add_argument("--week", action="store_true", help="Monday-Sunday week of --date (default: today)")

    viewer = argparse.ArgumentParser(add_help=False)
    viewer.add_argument("--student-id", type=str, help="Viewing student (defaults to the stored session)")

    p_login = sub.add_parser("login", help="Store API base URL, token and student id")
    p_login.add_argument("--base-url", dest="base_url", type=str)
    p_login.add_argument("--token", type=str)
    p_login.add_argument("--student-id", dest="student_id", type=str)

    p_schedule = sub.add_parser("schedule", parents=[common, period], help="Show classes per day")
    p_schedule.add_argument("--search", type=str, default="", help="Course name, code, instructor, location or room")
    p_schedule.add_argument("--stats", action="store_true", help="Print totals for the period")
    sub.add_parser("next", parents=[common], help="Show the next classes")
    sub.add_parser("status", parents=[common], help="Show course lifecycle status")

    p_assign = sub.add_parser("assignments", parents=[common, viewer], help="Show assignments and their status")
    p_assign.add_argument("--filter", choices=FILTER_CHOICES, default="all")
    p_assign.add_argument("--type", choices=TYPE_CHOICES)
    p_assign.add_argument("--search", type=str, default="")
    p_assign.add_argument("--desc", action="store_true", help="Latest due date first")

    p_can = sub.add_parser("can-submit", parents=[common, viewer], help="Check if a submission is allowed now")
    p_can.add_argument("assignment_id", type=str)

    sub.add_parser("conflicts", parents=[common, period], help="Show overlapping classes")

    p_export = sub.add_parser("export", parents=[common, period], help="Export classes to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")

    return parser


COMMANDS = {
    "login": _cmd_login,
    "schedule": _cmd_schedule,
    "next": _cmd_next,
    "status": _cmd_status,
    "assignments": _cmd_assignments,
    "can-submit": _cmd_can_submit,
    "conflicts": _cmd_conflicts,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = resolve_settings(load_session())
        code = COMMANDS[args.command](args, settings)
    except (CommandError, PortalAPIError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise SystemExit(1)
    raise SystemExit(code)
