"""
Status derivation for courses and assignments.

Statuses are never read from a stored field: they are recomputed from
timestamps (and, for courses, the administrative override) every time.
`now` is always passed in by the caller.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Optional

from classportal.config import STATUS_THRESHOLD_DAYS
from classportal.model import (
    Assignment,
    AssignmentStatus,
    Course,
    CourseStatus,
    CourseStatusInfo,
    Submission,
    SubmitCheck,
)

_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def _time_phase(course: Course, now: datetime) -> CourseStatus:
    if now < course.start_date:
        return CourseStatus.UPCOMING
    if now <= course.end_date:
        return CourseStatus.ONGOING
    return CourseStatus.COMPLETED


def derive_course_status(course: Course, now: datetime) -> CourseStatus:
    """
    Current lifecycle status of a course.

    Precedence (first match wins):
    1. administrative override (cancelled / paused)
    2. upcoming   (now < start)
    3. ongoing    (start <= now <= end)
    4. completed  (now > end)
    """
    if course.administrative_status is not None:
        return course.administrative_status
    return _time_phase(course, now)


def course_status_info(
    course: Course,
    now: datetime,
    threshold_days: int = STATUS_THRESHOLD_DAYS,
) -> CourseStatusInfo:
    """
    Status plus day counters and "soon"/"recent" flags, all from one `now`.

    The flags follow the time phase (not the override), so
    is_starting_soon can never be true while the course is running.
    """
    phase = _time_phase(course, now)

    days_until_start = math.ceil((course.start_date - now) / _DAY) if phase is CourseStatus.UPCOMING else 0
    days_until_end = math.ceil((course.end_date - now) / _DAY) if phase is not CourseStatus.COMPLETED else 0
    days_since_end = math.floor((now - course.end_date) / _DAY) if phase is CourseStatus.COMPLETED else 0

    return CourseStatusInfo(
        status=derive_course_status(course, now),
        days_until_start=days_until_start,
        days_until_end=days_until_end,
        days_since_end=days_since_end,
        duration=math.ceil((course.end_date - course.start_date) / _DAY),
        is_starting_soon=phase is CourseStatus.UPCOMING and days_until_start <= threshold_days,
        is_ending_soon=phase is CourseStatus.ONGOING and days_until_end <= threshold_days,
        is_recently_ended=phase is CourseStatus.COMPLETED and days_since_end <= threshold_days,
    )


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


def derive_assignment_status(
    assignment: Assignment,
    submission: Optional[Submission],
    now: datetime,
) -> AssignmentStatus:
    """
    Status of an assignment for the viewer who owns `submission`.

    Without a submission: overdue once the due date has passed, else pending.
    With a submission: graded if it has a score, else submitted.
    A late submission is still submitted/graded; see is_submission_late().
    """
    if submission is None:
        if now > assignment.due_date:
            return AssignmentStatus.OVERDUE
        return AssignmentStatus.PENDING
    if submission.score is not None:
        return AssignmentStatus.GRADED
    return AssignmentStatus.SUBMITTED


def is_submission_late(assignment: Assignment, submission: Optional[Submission]) -> bool:
    if submission is None:
        return False
    return submission.submission_date > assignment.due_date


def can_submit(assignment: Assignment, now: datetime) -> SubmitCheck:
    """
    Whether a submission is accepted right now.

    Re-evaluate at submit time; do not reuse an earlier result.
    """
    if not assignment.is_active:
        return SubmitCheck(False, "Assignment is not active")
    if now <= assignment.due_date:
        return SubmitCheck(True, "Submission allowed")
    if assignment.allow_late_submission:
        return SubmitCheck(True, "Late submission allowed")
    return SubmitCheck(False, "Submission deadline has passed")


def days_until_due(assignment: Assignment, now: datetime) -> int:
    """
    Whole days until the due date, rounded up. Negative once overdue.
    """
    return math.ceil((assignment.due_date - now) / _DAY)


# ---------------------------------------------------------------------------
# Grades
# ---------------------------------------------------------------------------

_LETTER_SCALE = (
    (90, "A+"),
    (85, "A"),
    (80, "B+"),
    (75, "B"),
    (70, "C+"),
    (65, "C"),
    (50, "D"),
)


def grade_percentage(score: float, max_score: float) -> float:
    if max_score <= 0:
        raise ValueError(f"Invalid max score: {max_score!r}")
    return round(score / max_score * 100, 2)


def grade_letter(percentage: float) -> str:
    for minimum, letter in _LETTER_SCALE:
        if percentage >= minimum:
            return letter
    return "F"
