"""
Parsing (API JSON -> model objects).

- Converts raw course / assignment records into model dataclasses
- Validates dates and weekly pattern entries at the boundary
- Never raises for bad data: every problem becomes a ValidationIssue

Important rules:
- A malformed start/end/due date rejects the whole record
  (no fallback to "now" or to the epoch)
- A malformed weekly pattern entry only drops that entry
- A time-derived status stored on a course record is ignored;
  only "cancelled" / "paused" survive as administrative overrides
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from classportal.config import DEFAULT_TZ
from classportal.model import (
    ADMINISTRATIVE_STATUSES,
    Assignment,
    AssignmentType,
    Course,
    CourseStatus,
    Submission,
    ValidationIssue,
    Weekday,
    WeeklySlot,
)

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

UNKNOWN_ID = "<unknown>"


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def parse_instant(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp (or date) into an aware datetime.

    Accepts "2024-10-01T23:59:00Z", "2024-10-01T23:59:00+07:00",
    "2024-10-01" and datetime/date objects. Naive values are read in DEFAULT_TZ.
    Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        # fromisoformat() only learned "Z" in 3.11
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Invalid timestamp: {value!r}") from None
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=DEFAULT_TZ)
    return dt


def parse_hhmm(value: Any) -> int:
    """
    Convert 'HH:MM' to minutes since midnight.
    Raises ValueError for invalid formats.
    """
    if not isinstance(value, str):
        raise ValueError(f"Invalid time format: {value!r}")
    m = _HHMM_RE.match(value.strip())
    if not m:
        raise ValueError(f"Invalid time format: {value!r}")
    return int(m.group(1)) * 60 + int(m.group(2))


def parse_weekday(value: Any) -> Weekday:
    if isinstance(value, Weekday):
        return value
    if isinstance(value, str):
        name = value.strip().capitalize()
        for day in Weekday:
            if day.value == name:
                return day
    raise ValueError(f"Unknown dayOfWeek: {value!r}")


def _ref_id(value: Any) -> str:
    """
    References come either as a plain id or as a populated object.
    """
    if isinstance(value, dict):
        return str(value.get("_id", "") or "").strip()
    return "" if value is None else str(value).strip()


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_flag(value: Any) -> bool:
    """
    Strict boolean: True/False, "true"/"false", 1/0.
    Raises ValueError for anything else ("yes", "", 2, ...).
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"Invalid boolean: {value!r}")


def parse_number(value: Any) -> float:
    """
    Strict number: int/float or a numeric string like "8" / "7.5".
    Raises ValueError for booleans, NaN and anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid number: {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            raise ValueError(f"Invalid number: {value!r}") from None
    else:
        raise ValueError(f"Invalid number: {value!r}")
    if number != number or number in (float("inf"), float("-inf")):
        raise ValueError(f"Invalid number: {value!r}")
    return number


# ---------------------------------------------------------------------------
# Weekly pattern
# ---------------------------------------------------------------------------


def validate_slot(slot: WeeklySlot, record_id: str) -> Optional[ValidationIssue]:
    """
    Check an already-built slot. Returns None when it is usable.
    """
    if not isinstance(slot.day_of_week, Weekday):
        return ValidationIssue(record_id, "schedule.dayOfWeek", f"Unknown dayOfWeek: {slot.day_of_week!r}")
    field_name = f"schedule[{slot.day_of_week.value}]"
    try:
        start = parse_hhmm(slot.start_time)
        end = parse_hhmm(slot.end_time)
    except ValueError as exc:
        return ValidationIssue(record_id, field_name, str(exc))
    if start >= end:
        return ValidationIssue(
            record_id, field_name, f"startTime {slot.start_time} is not before endTime {slot.end_time}"
        )
    return None


def parse_slot(raw: Dict[str, Any], record_id: str) -> Tuple[Optional[WeeklySlot], List[ValidationIssue]]:
    """
    Parse one weekly pattern entry {dayOfWeek, startTime, endTime, room?}.
    """
    if not isinstance(raw, dict):
        return None, [ValidationIssue(record_id, "schedule", f"pattern entry is not an object: {raw!r}")]

    try:
        day = parse_weekday(raw.get("dayOfWeek"))
    except ValueError as exc:
        return None, [ValidationIssue(record_id, "schedule.dayOfWeek", str(exc))]

    slot = WeeklySlot(
        day_of_week=day,
        start_time=str(raw.get("startTime", "")).strip(),
        end_time=str(raw.get("endTime", "")).strip(),
        room=_optional_str(raw.get("room")),
        slot_id=_optional_str(raw.get("_id")),
    )
    issue = validate_slot(slot, record_id)
    if issue:
        return None, [issue]
    return slot, []


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def _administrative_status(value: Any) -> Optional[CourseStatus]:
    """
    Keep only manual overrides. Raises ValueError for unknown values.
    """
    if value is None or value == "":
        return None
    try:
        status = CourseStatus(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown course status: {value!r}") from None
    return status if status in ADMINISTRATIVE_STATUSES else None


def _instructor_name(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return _optional_str(value.get("fullName"))
    return None


def parse_course(raw: Dict[str, Any]) -> Tuple[Optional[Course], List[ValidationIssue]]:
    """
    Parse one course record.

    Returns (None, issues) if the record has to be rejected.
    """
    if not isinstance(raw, dict):
        return None, [ValidationIssue(UNKNOWN_ID, "course", "record is not an object")]

    course_id = _ref_id(raw.get("_id")) or UNKNOWN_ID
    issues: List[ValidationIssue] = []

    dates: Dict[str, datetime] = {}
    for key in ("startDate", "endDate"):
        try:
            dates[key] = parse_instant(raw.get(key))
        except ValueError as exc:
            issues.append(ValidationIssue(course_id, key, str(exc)))

    try:
        admin = _administrative_status(raw.get("status"))
    except ValueError as exc:
        issues.append(ValidationIssue(course_id, "status", str(exc)))
        admin = None

    if issues:
        return None, issues

    if dates["startDate"] > dates["endDate"]:
        return None, [ValidationIssue(course_id, "endDate", "endDate is before startDate")]

    slots: List[WeeklySlot] = []
    seen: set[tuple[Weekday, str]] = set()
    raw_schedule = raw.get("schedule") or []
    if not isinstance(raw_schedule, list):
        issues.append(ValidationIssue(course_id, "schedule", "schedule is not a list"))
        raw_schedule = []

    for entry in raw_schedule:
        slot, slot_issues = parse_slot(entry, course_id)
        issues.extend(slot_issues)
        if slot is None:
            continue
        key = (slot.day_of_week, slot.start_time)
        if key in seen:
            issues.append(
                ValidationIssue(
                    course_id,
                    f"schedule[{slot.day_of_week.value}]",
                    f"duplicate entry at {slot.start_time}",
                )
            )
            continue
        seen.add(key)
        slots.append(slot)

    credits = raw.get("credits")
    course = Course(
        course_id=course_id,
        code=str(raw.get("id", "") or "").strip(),
        name=str(raw.get("name", "") or "").strip(),
        start_date=dates["startDate"],
        end_date=dates["endDate"],
        schedule=slots,
        administrative_status=admin,
        location=_optional_str(raw.get("location")),
        instructor_name=_instructor_name(raw.get("instructorId")),
        credits=float(credits) if isinstance(credits, (int, float)) else None,
        semester=_optional_str(raw.get("semester")),
        academic_year=_optional_str(raw.get("academicYear")),
    )
    return course, issues


def parse_courses(raws: Iterable[Dict[str, Any]]) -> Tuple[List[Course], List[ValidationIssue]]:
    courses: List[Course] = []
    issues: List[ValidationIssue] = []
    for raw in raws:
        course, course_issues = parse_course(raw)
        issues.extend(course_issues)
        if course is not None:
            courses.append(course)
    return courses, issues


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


def parse_submission(raw: Dict[str, Any], record_id: str) -> Tuple[Optional[Submission], List[ValidationIssue]]:
    if not isinstance(raw, dict):
        return None, [ValidationIssue(record_id, "submissions", "submission is not an object")]

    student_id = _ref_id(raw.get("student"))
    if not student_id:
        return None, [ValidationIssue(record_id, "submissions.student", "missing student")]

    try:
        submitted_at = parse_instant(raw.get("submissionDate"))
    except ValueError as exc:
        return None, [ValidationIssue(record_id, f"submissions[{student_id}].submissionDate", str(exc))]

    graded_at = None
    if raw.get("gradedAt"):
        try:
            graded_at = parse_instant(raw.get("gradedAt"))
        except ValueError as exc:
            return None, [ValidationIssue(record_id, f"submissions[{student_id}].gradedAt", str(exc))]

    issues: List[ValidationIssue] = []
    score = None
    if raw.get("score") is not None:
        try:
            score = parse_number(raw.get("score"))
        except ValueError as exc:
            issues.append(ValidationIssue(record_id, f"submissions[{student_id}].score", str(exc)))

    attempt = raw.get("attemptNumber")
    return (
        Submission(
            student_id=student_id,
            submission_date=submitted_at,
            score=score,
            graded_at=graded_at,
            attempt_number=attempt if isinstance(attempt, int) and attempt > 0 else 1,
            feedback=_optional_str(raw.get("feedback")),
        ),
        issues,
    )


def parse_assignment(raw: Dict[str, Any]) -> Tuple[Optional[Assignment], List[ValidationIssue]]:
    """
    Parse one assignment record together with its submissions.
    """
    if not isinstance(raw, dict):
        return None, [ValidationIssue(UNKNOWN_ID, "assignment", "record is not an object")]

    assignment_id = _ref_id(raw.get("_id")) or UNKNOWN_ID
    try:
        due = parse_instant(raw.get("dueDate"))
    except ValueError as exc:
        return None, [ValidationIssue(assignment_id, "dueDate", str(exc))]

    issues: List[ValidationIssue] = []
    submissions: List[Submission] = []
    raw_submissions = raw.get("submissions") or []
    if not isinstance(raw_submissions, list):
        issues.append(ValidationIssue(assignment_id, "submissions", "submissions is not a list"))
        raw_submissions = []

    for entry in raw_submissions:
        sub, sub_issues = parse_submission(entry, assignment_id)
        issues.extend(sub_issues)
        if sub is not None:
            submissions.append(sub)

    flags: Dict[str, bool] = {}
    for key, default in (("allowLateSubmission", False), ("isActive", True)):
        value = raw.get(key)
        if value is None:
            flags[key] = default
            continue
        try:
            flags[key] = parse_flag(value)
        except ValueError as exc:
            issues.append(ValidationIssue(assignment_id, key, f"{exc}, using {default}"))
            flags[key] = default

    assignment_type = None
    if raw.get("type"):
        try:
            assignment_type = AssignmentType(str(raw.get("type")).strip().lower())
        except ValueError:
            issues.append(ValidationIssue(assignment_id, "type", f"Unknown assignment type: {raw.get('type')!r}"))

    course = raw.get("course") if isinstance(raw.get("course"), dict) else {}
    max_score = raw.get("maxScore")
    return (
        Assignment(
            assignment_id=assignment_id,
            title=str(raw.get("title", "") or "").strip(),
            due_date=due,
            allow_late_submission=flags["allowLateSubmission"],
            is_active=flags["isActive"],
            submissions=submissions,
            description=str(raw.get("description", "") or ""),
            instructions=str(raw.get("instructions", "") or ""),
            course_name=str(course.get("name", "") or ""),
            course_code=str(course.get("id", "") or ""),
            max_score=float(max_score) if isinstance(max_score, (int, float)) and max_score > 0 else 10.0,
            assignment_type=assignment_type,
        ),
        issues,
    )


def parse_assignments(raws: Iterable[Dict[str, Any]]) -> Tuple[List[Assignment], List[ValidationIssue]]:
    assignments: List[Assignment] = []
    issues: List[ValidationIssue] = []
    for raw in raws:
        assignment, assignment_issues = parse_assignment(raw)
        issues.extend(assignment_issues)
        if assignment is not None:
            assignments.append(assignment)
    return assignments, issues
