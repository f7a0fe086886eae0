"""
Central data model definitions used across the project.

This module defines the canonical structure of courses, assignments and the
values derived from them so that:
- parsing, derivation, aggregation and CLI share the same field names
- derived values (statuses, occurrences) are never confused with stored ones
- the code stays readable and beginner-friendly
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class Weekday(Enum):
    """
    Weekday names as they appear in a course's weekly pattern.

    Member order matches date.weekday() (Monday == 0).
    """

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def of(cls, d: date) -> "Weekday":
        return list(cls)[d.weekday()]


class CourseStatus(Enum):
    """
    Lifecycle state of a course.

    UPCOMING/ONGOING/COMPLETED are derived from dates.
    CANCELLED/PAUSED are manual administrative overrides.
    """

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PAUSED = "paused"


ADMINISTRATIVE_STATUSES = frozenset({CourseStatus.CANCELLED, CourseStatus.PAUSED})


class AssignmentStatus(Enum):
    """
    Status of an assignment as seen by one student.
    """

    PENDING = "pending"
    SUBMITTED = "submitted"
    GRADED = "graded"
    OVERDUE = "overdue"


class AssignmentType(Enum):
    """
    What kind of work an assignment asks for.
    """

    PHOTO = "photo"
    DOCUMENT = "document"
    VIDEO = "video"
    TEXT = "text"


@dataclass
class WeeklySlot:
    """
    One entry of a course's weekly meeting pattern, e.g. Monday 07:00-09:30.
    """

    day_of_week: Weekday
    start_time: str
    end_time: str
    room: Optional[str] = None
    slot_id: Optional[str] = None


@dataclass
class Course:
    """
    Represents one course as returned by the portal API.

    start_date/end_date are timezone-aware instants.
    administrative_status only ever holds CANCELLED or PAUSED.
    """

    course_id: str
    code: str
    name: str
    start_date: datetime
    end_date: datetime
    schedule: List[WeeklySlot] = field(default_factory=list)
    administrative_status: Optional[CourseStatus] = None
    location: Optional[str] = None
    instructor_name: Optional[str] = None
    credits: Optional[float] = None
    semester: Optional[str] = None
    academic_year: Optional[str] = None


@dataclass
class Submission:
    """
    One student's submission for one assignment.

    Resubmission overwrites the fields and bumps attempt_number.
    """

    student_id: str
    submission_date: datetime
    score: Optional[float] = None
    graded_at: Optional[datetime] = None
    attempt_number: int = 1
    feedback: Optional[str] = None


@dataclass
class Assignment:
    assignment_id: str
    title: str
    due_date: datetime
    allow_late_submission: bool
    is_active: bool
    submissions: List[Submission] = field(default_factory=list)
    description: str = ""
    instructions: str = ""
    course_name: str = ""
    course_code: str = ""
    max_score: float = 10.0
    assignment_type: Optional[AssignmentType] = None

    def submission_for(self, student_id: Optional[str]) -> Optional[Submission]:
        """
        Return the submission of the given student, or None.
        """
        if not student_id:
            return None
        for sub in self.submissions:
            if sub.student_id == student_id:
                return sub
        return None


@dataclass(frozen=True)
class ScheduleOccurrence:
    """
    One concrete meeting of a course on a calendar date.

    Produced fresh by every materialization; carries a snapshot of the
    course display fields.
    """

    course_id: str
    course_code: str
    course_name: str
    date: date
    day_of_week: Weekday
    start_time: str
    end_time: str
    room: Optional[str]
    location: Optional[str]
    instructor_name: Optional[str]
    course_status: CourseStatus

    @property
    def date_key(self) -> str:
        return self.date.isoformat()

    @property
    def occurrence_id(self) -> str:
        return f"{self.course_id}_{self.date_key}_{self.start_time}"


@dataclass(frozen=True)
class ValidationIssue:
    """
    A problem found in an input record: which record, which field, and why.
    """

    record_id: str
    field: str
    reason: str

    def __str__(self) -> str:
        return f"{self.record_id}.{self.field}: {self.reason}"


@dataclass(frozen=True)
class CourseStatusInfo:
    status: CourseStatus
    days_until_start: int
    days_until_end: int
    days_since_end: int
    duration: int
    is_starting_soon: bool
    is_ending_soon: bool
    is_recently_ended: bool


@dataclass(frozen=True)
class SubmitCheck:
    can: bool
    reason: str


@dataclass(frozen=True)
class AssignmentView:
    """
    An assignment annotated for one viewing student at one instant.
    """

    assignment: Assignment
    status: AssignmentStatus
    submission: Optional[Submission]
    is_late: bool
    can_submit: SubmitCheck
    days_until_due: int


@dataclass(frozen=True)
class NextClasses:
    """
    The next day that still has classes, seen from one instant.

    is_today is True when the occurrences are later today.
    """

    date: date
    occurrences: List[ScheduleOccurrence]
    is_today: bool


@dataclass(frozen=True)
class ScheduleStatistics:
    total_classes: int
    courses_count: int
    days_with_classes: int
    average_per_day: float
