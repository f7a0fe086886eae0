"""
Schedule materialization.

Expands each course's weekly pattern into concrete ScheduleOccurrence
objects for a date range. The three query shapes used by the schedule
screens (one day, explicit range, year/month) all reduce to a DateRange.

Rules:
- only dates inside both the range and [start_date, end_date] qualify
- cancelled courses produce nothing; paused courses stay on the calendar
- invalid pattern entries are skipped, never raised (see pattern_issues)
- output order is (date, start_time, course_id), identical on every call
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Iterator, List, Tuple

from classportal.config import DEFAULT_TZ
from classportal.model import Course, CourseStatus, ScheduleOccurrence, ValidationIssue, Weekday, WeeklySlot
from classportal.parse import parse_hhmm, validate_slot
from classportal.status import derive_course_status


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive range of calendar dates. start > end means empty.
    """

    start: date
    end: date

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def days(self) -> Iterator[date]:
        d = self.start
        while d <= self.end:
            yield d
            d += timedelta(days=1)

    def intersect(self, other: "DateRange") -> "DateRange":
        return DateRange(max(self.start, other.start), min(self.end, other.end))


def range_for_day(d: date) -> DateRange:
    return DateRange(d, d)


def range_between(start: date, end: date) -> DateRange:
    return DateRange(start, end)


def range_for_week(d: date) -> DateRange:
    """
    Monday..Sunday week containing `d`.
    """
    monday = d - timedelta(days=d.weekday())
    return DateRange(monday, monday + timedelta(days=6))


def range_for_month(year: int, month: int) -> DateRange:
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month!r}")
    last = calendar.monthrange(year, month)[1]
    return DateRange(date(year, month, 1), date(year, month, last))


def local_date(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> date:
    """
    Calendar date of an instant in the given zone.
    """
    return instant.astimezone(tz).date()


def course_date_range(course: Course, tz: tzinfo = DEFAULT_TZ) -> DateRange:
    return DateRange(local_date(course.start_date, tz), local_date(course.end_date, tz))


def _usable_slots(course: Course) -> Tuple[List[WeeklySlot], List[ValidationIssue]]:
    """
    Valid pattern entries with surrounding blanks stripped from their times.

    Duplicates are keyed on (weekday, start minute), so " 07:00" and "07:00"
    are the same entry. The first one wins.
    """
    slots: List[WeeklySlot] = []
    issues: List[ValidationIssue] = []
    seen: set[tuple[Weekday, int]] = set()
    for slot in course.schedule:
        issue = validate_slot(slot, course.course_id)
        if issue is not None:
            issues.append(issue)
            continue
        slot = replace(slot, start_time=slot.start_time.strip(), end_time=slot.end_time.strip())
        key = (slot.day_of_week, parse_hhmm(slot.start_time))
        if key in seen:
            issues.append(
                ValidationIssue(
                    course.course_id,
                    f"schedule[{slot.day_of_week.value}]",
                    f"duplicate entry at {slot.start_time}",
                )
            )
            continue
        seen.add(key)
        slots.append(slot)
    return slots, issues


def materialize(
    courses: Iterable[Course],
    date_range: DateRange,
    now: datetime,
    tz: tzinfo = DEFAULT_TZ,
) -> List[ScheduleOccurrence]:
    """
    Expand weekly patterns into dated occurrences inside `date_range`.
    """
    if date_range.is_empty:
        return []

    out: List[ScheduleOccurrence] = []
    for course in courses:
        status = derive_course_status(course, now)
        if status is CourseStatus.CANCELLED:
            continue

        window = date_range.intersect(course_date_range(course, tz))
        if window.is_empty:
            continue

        by_day: dict[Weekday, list] = {}
        for slot in _usable_slots(course)[0]:
            by_day.setdefault(slot.day_of_week, []).append(slot)

        if not by_day:
            continue

        for d in window.days():
            weekday = Weekday.of(d)
            for slot in by_day.get(weekday, []):
                out.append(
                    ScheduleOccurrence(
                        course_id=course.course_id,
                        course_code=course.code,
                        course_name=course.name,
                        date=d,
                        day_of_week=weekday,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        room=slot.room,
                        location=course.location,
                        instructor_name=course.instructor_name,
                        course_status=status,
                    )
                )

    out.sort(key=lambda occ: (occ.date, parse_hhmm(occ.start_time), occ.course_id))
    return out


def pattern_issues(courses: Iterable[Course]) -> List[ValidationIssue]:
    """
    Report the pattern entries that materialize() skips.
    """
    issues: List[ValidationIssue] = []
    for course in courses:
        issues.extend(_usable_slots(course)[1])
    return issues
