"""
Aggregation helpers for the presentation layer.

- group_by_date: occurrences -> {"YYYY-MM-DD": [...]} for schedule views
- next_occurrences / schedule_statistics / search_occurrences: schedule summaries
- annotate_assignments: assignments -> AssignmentView for one viewer
- filter / search / sort / count over AssignmentView lists (filter tabs)

All functions return new lists and never modify their input.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, tzinfo
from typing import Dict, Iterable, List, Optional

from classportal.config import DEFAULT_TZ
from classportal.model import (
    Assignment,
    AssignmentStatus,
    AssignmentType,
    AssignmentView,
    NextClasses,
    ScheduleOccurrence,
    ScheduleStatistics,
)
from classportal.parse import parse_hhmm
from classportal.status import can_submit, days_until_due, derive_assignment_status, is_submission_late

ALL = "all"


def group_by_date(occurrences: Iterable[ScheduleOccurrence]) -> Dict[str, List[ScheduleOccurrence]]:
    """
    Bucket occurrences by local calendar date.

    Keys are ascending; each bucket is ordered by start time (ties by course id).
    """
    buckets: Dict[str, List[ScheduleOccurrence]] = defaultdict(list)
    for occ in occurrences:
        buckets[occ.date_key].append(occ)

    return {
        key: sorted(buckets[key], key=lambda o: (parse_hhmm(o.start_time), o.course_id))
        for key in sorted(buckets)
    }


def next_occurrences(
    occurrences: Iterable[ScheduleOccurrence],
    now: datetime,
    tz: tzinfo = DEFAULT_TZ,
) -> Optional[NextClasses]:
    """
    What is coming up next.

    Classes later today (start strictly after the current local minute) win;
    otherwise the first later date that has classes. None if nothing is left.
    Only looks at the occurrences it is given, so materialize far enough ahead.
    """
    local_now = now.astimezone(tz)
    today = local_now.date()
    minute = local_now.hour * 60 + local_now.minute

    # buckets come in ascending date order
    for bucket in group_by_date(occurrences).values():
        day = bucket[0].date
        if day == today:
            upcoming = [o for o in bucket if parse_hhmm(o.start_time) > minute]
            if upcoming:
                return NextClasses(date=day, occurrences=upcoming, is_today=True)
        elif day > today:
            return NextClasses(date=day, occurrences=bucket, is_today=False)
    return None


def schedule_statistics(occurrences: Iterable[ScheduleOccurrence]) -> ScheduleStatistics:
    items = list(occurrences)
    days = {o.date for o in items}
    return ScheduleStatistics(
        total_classes=len(items),
        courses_count=len({o.course_id for o in items}),
        days_with_classes=len(days),
        average_per_day=len(items) / len(days) if days else 0.0,
    )


def search_occurrences(occurrences: Iterable[ScheduleOccurrence], query: str) -> List[ScheduleOccurrence]:
    """
    Case-insensitive substring search over course name, course code,
    instructor, location and room. Blank query keeps everything.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return list(occurrences)

    out: List[ScheduleOccurrence] = []
    for o in occurrences:
        hay = " ".join(
            [o.course_name, o.course_code, o.instructor_name or "", o.location or "", o.room or ""]
        ).lower()
        if needle in hay:
            out.append(o)
    return out

def annotate_assignments(
    assignments: Iterable[Assignment],
    viewer_id: Optional[str],
    now: datetime,
) -> List[AssignmentView]:
    """
    Attach status, lateness and submit permission for one student.

    The deriver only uses the viewer's own submission; a score on someone
    else's submission never makes the assignment "graded" for the viewer.
    """
    views: List[AssignmentView] = []
    for assignment in assignments:
        submission = assignment.submission_for(viewer_id)
        views.append(
            AssignmentView(
                assignment=assignment,
                status=derive_assignment_status(assignment, submission, now),
                submission=submission,
                is_late=is_submission_late(assignment, submission),
                can_submit=can_submit(assignment, now),
                days_until_due=days_until_due(assignment, now),
            )
        )
    return views


def _status_key(status: AssignmentStatus | str | None) -> Optional[str]:
    if status is None:
        return None
    if isinstance(status, AssignmentStatus):
        return status.value
    return str(status).strip().lower()


def filter_assignments_by_status(
    views: Iterable[AssignmentView],
    status: AssignmentStatus | str | None,
) -> List[AssignmentView]:
    """
    Keep views with the given status. "all" or None keeps everything.
    """
    key = _status_key(status)
    if key is None or key == ALL:
        return list(views)
    return [v for v in views if v.status.value == key]


def filter_assignments_by_type(
    views: Iterable[AssignmentView],
    assignment_type: AssignmentType | str,
) -> List[AssignmentView]:
    """
    Keep views whose assignment has the given type. Untyped assignments never match.
    """
    if isinstance(assignment_type, AssignmentType):
        key = assignment_type.value
    else:
        key = str(assignment_type).strip().lower()
    return [
        v for v in views
        if v.assignment.assignment_type is not None and v.assignment.assignment_type.value == key
    ]

def search_assignments(views: Iterable[AssignmentView], query: str) -> List[AssignmentView]:
    """
    Case-insensitive substring search over title, description,
    course name, course code and instructions.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return list(views)

    out: List[AssignmentView] = []
    for v in views:
        a = v.assignment
        hay = " ".join([a.title, a.description, a.course_name, a.course_code, a.instructions]).lower()
        if needle in hay:
            out.append(v)
    return out


def sort_assignments_by_due_date(views: Iterable[AssignmentView], ascending: bool = True) -> List[AssignmentView]:
    # sorted() is stable, equal due dates keep their input order
    return sorted(views, key=lambda v: v.assignment.due_date, reverse=not ascending)


def count_assignments_by_status(views: Iterable[AssignmentView]) -> Dict[str, int]:
    """
    Counts for the filter tabs: all, pending, submitted, graded, overdue.
    """
    counts = {ALL: 0}
    counts.update({s.value: 0 for s in AssignmentStatus})
    for v in views:
        counts[ALL] += 1
        counts[v.status.value] += 1
    return counts


def group_assignments_by_status(views: Iterable[AssignmentView]) -> Dict[str, List[AssignmentView]]:
    groups: Dict[str, List[AssignmentView]] = {}
    for v in views:
        groups.setdefault(v.status.value, []).append(v)
    return groups
