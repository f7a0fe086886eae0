import unittest
from datetime import datetime, timedelta, timezone

from classportal.model import AssignmentStatus, AssignmentType, CourseStatus, Weekday
from classportal.parse import (
    parse_assignment,
    parse_course,
    parse_courses,
    parse_flag,
    parse_hhmm,
    parse_instant,
    parse_number,
)
from classportal.status import derive_assignment_status


def _raw_course(**overrides):
    raw = {
        "_id": "66c1",
        "id": "CT00003",
        "name": "Intro to Computing",
        "instructorId": {"_id": "u1", "fullName": "Nguyen Van Giang", "email": "giangnv@edu.vn"},
        "credits": 3,
        "location": "Building TA2",
        "status": "ongoing",
        "startDate": "2024-08-15T00:00:00.000Z",
        "endDate": "2024-12-31T00:00:00.000Z",
        "semester": "HK1",
        "academicYear": "2024-2025",
        "schedule": [
            {"_id": "s1", "dayOfWeek": "Monday", "startTime": "07:00", "endTime": "09:30", "room": "403"},
        ],
    }
    raw.update(overrides)
    return raw


class TestScalars(unittest.TestCase):
    def test_instant_formats(self) -> None:
        utc = timezone.utc
        self.assertEqual(parse_instant("2024-10-01T23:59:00Z"), datetime(2024, 10, 1, 23, 59, tzinfo=utc))
        self.assertEqual(
            parse_instant("2024-10-02T06:59:00+07:00"),
            datetime(2024, 10, 1, 23, 59, tzinfo=utc),
        )
        self.assertEqual(parse_instant("2024-10-01"), datetime(2024, 10, 1, tzinfo=utc))
        self.assertEqual(parse_instant(datetime(2024, 10, 1, 8, 0)).tzinfo, utc)

    def test_instant_rejects_garbage(self) -> None:
        for bad in ("", "not-a-date", "2024-13-45", None, 12345, "Thu Aug 15 2024 07:00:00 GMT+0700"):
            with self.assertRaises(ValueError):
                parse_instant(bad)

    def test_hhmm(self) -> None:
        self.assertEqual(parse_hhmm("07:00"), 420)
        self.assertEqual(parse_hhmm("23:59"), 23 * 60 + 59)
        for bad in ("7:00", "1015", "24:00", "12:60", "", None):
            with self.assertRaises(ValueError):
                parse_hhmm(bad)


class TestParseCourse(unittest.TestCase):
    def test_normal_course(self) -> None:
        course, issues = parse_course(_raw_course())
        self.assertEqual(issues, [])
        assert course is not None

        self.assertEqual(course.course_id, "66c1")
        self.assertEqual(course.code, "CT00003")
        self.assertEqual(course.instructor_name, "Nguyen Van Giang")
        self.assertEqual(course.credits, 3.0)
        self.assertEqual(len(course.schedule), 1)
        self.assertEqual(course.schedule[0].day_of_week, Weekday.MONDAY)
        self.assertEqual(course.schedule[0].room, "403")
        # stored time-based status is not ground truth
        self.assertIsNone(course.administrative_status)

    def test_administrative_status_is_kept(self) -> None:
        for value, expected in (("cancelled", CourseStatus.CANCELLED), ("paused", CourseStatus.PAUSED)):
            course, _ = parse_course(_raw_course(status=value))
            assert course is not None
            self.assertEqual(course.administrative_status, expected)

    def test_unknown_status_rejects_course(self) -> None:
        course, issues = parse_course(_raw_course(status="archived"))
        self.assertIsNone(course)
        self.assertEqual(issues[0].field, "status")

    def test_malformed_dates_reject_course(self) -> None:
        course, issues = parse_course(_raw_course(startDate="soon", endDate=None))
        self.assertIsNone(course)
        self.assertEqual({i.field for i in issues}, {"startDate", "endDate"})
        self.assertTrue(all(i.record_id == "66c1" for i in issues))

    def test_end_before_start_rejects_course(self) -> None:
        course, issues = parse_course(_raw_course(startDate="2024-12-31", endDate="2024-08-15"))
        self.assertIsNone(course)
        self.assertEqual(issues[0].field, "endDate")

    def test_bad_pattern_entries_only_drop_themselves(self) -> None:
        raw = _raw_course(
            schedule=[
                {"dayOfWeek": "Monday", "startTime": "07:00", "endTime": "09:30"},
                {"dayOfWeek": "Funday", "startTime": "07:00", "endTime": "09:30"},
                {"dayOfWeek": "Tuesday", "startTime": "10:00", "endTime": "09:00"},
                {"dayOfWeek": "Wednesday", "startTime": "0900", "endTime": "1000"},
                {"dayOfWeek": "Monday", "startTime": "07:00", "endTime": "08:00"},
            ]
        )
        course, issues = parse_course(raw)
        assert course is not None
        self.assertEqual([(s.day_of_week, s.start_time) for s in course.schedule], [(Weekday.MONDAY, "07:00")])
        self.assertEqual(len(issues), 4)

    def test_instructor_as_plain_id(self) -> None:
        course, _ = parse_course(_raw_course(instructorId="u1"))
        assert course is not None
        self.assertIsNone(course.instructor_name)

    def test_parse_courses_skips_rejected(self) -> None:
        courses, issues = parse_courses([_raw_course(), _raw_course(_id="bad", endDate="x"), "junk"])
        self.assertEqual([c.course_id for c in courses], ["66c1"])
        self.assertEqual(len(issues), 2)


class TestParseAssignment(unittest.TestCase):
    def _raw(self, **overrides):
        raw = {
            "_id": "a1",
            "title": "Homework 1",
            "description": "Chapter 1 exercises",
            "course": {"_id": "66c1", "name": "Intro to Computing", "id": "CT00003"},
            "dueDate": "2024-10-01T23:59:00Z",
            "maxScore": 10,
            "isActive": True,
            "allowLateSubmission": False,
            "instructions": "Upload a PDF",
            "submissions": [
                {"student": {"_id": "s1", "fullName": "A"}, "submissionDate": "2024-10-01T10:00:00Z", "score": 8},
                {"student": "s2", "submissionDate": "2024-10-02T10:00:00Z", "attemptNumber": 2},
            ],
        }
        raw.update(overrides)
        return raw

    def test_normal_assignment(self) -> None:
        a, issues = parse_assignment(self._raw())
        self.assertEqual(issues, [])
        assert a is not None
        self.assertEqual(a.course_code, "CT00003")
        self.assertEqual(a.due_date, datetime(2024, 10, 1, 23, 59, tzinfo=timezone.utc))
        s1 = a.submission_for("s1")
        s2 = a.submission_for("s2")
        assert s1 is not None and s2 is not None
        self.assertEqual(s1.score, 8.0)
        self.assertIsNone(s2.score)
        self.assertEqual(s2.attempt_number, 2)
        self.assertIsNone(a.submission_for("s3"))
        self.assertIsNone(a.submission_for(None))

    def test_malformed_due_date_rejects(self) -> None:
        a, issues = parse_assignment(self._raw(dueDate="tomorrow"))
        self.assertIsNone(a)
        self.assertEqual(issues[0].field, "dueDate")

    def test_malformed_submission_date_drops_submission(self) -> None:
        raw = self._raw(submissions=[{"student": "s1", "submissionDate": "??"}])
        a, issues = parse_assignment(raw)
        assert a is not None
        self.assertEqual(a.submissions, [])
        self.assertEqual(len(issues), 1)
        self.assertIn("submissionDate", issues[0].field)

    def test_submission_dates_keep_offsets(self) -> None:
        raw = self._raw(submissions=[{"student": "s1", "submissionDate": "2024-10-02T06:00:00+07:00"}])
        a, _ = parse_assignment(raw)
        assert a is not None
        self.assertEqual(a.submissions[0].submission_date, a.due_date - timedelta(minutes=59))

    def test_submissions_not_a_list_is_reported(self) -> None:
        for bad in (5, "s1", {"student": "s1"}):
            a, issues = parse_assignment(self._raw(submissions=bad))
            assert a is not None
            self.assertEqual(a.submissions, [])
            self.assertEqual([(i.record_id, i.field) for i in issues], [("a1", "submissions")])

    def test_flag_strings_are_read_strictly(self) -> None:
        a, issues = parse_assignment(self._raw(isActive="false", allowLateSubmission="TRUE"))
        assert a is not None
        self.assertEqual(issues, [])
        self.assertFalse(a.is_active)
        self.assertTrue(a.allow_late_submission)

        a, _ = parse_assignment(self._raw(isActive=0, allowLateSubmission=1))
        assert a is not None
        self.assertFalse(a.is_active)
        self.assertTrue(a.allow_late_submission)

    def test_unreadable_flags_fall_back_and_are_reported(self) -> None:
        a, issues = parse_assignment(self._raw(isActive="nope", allowLateSubmission="yes"))
        assert a is not None
        self.assertTrue(a.is_active)
        self.assertFalse(a.allow_late_submission)
        self.assertEqual(sorted(i.field for i in issues), ["allowLateSubmission", "isActive"])

    def test_numeric_string_score_counts_as_graded(self) -> None:
        raw = self._raw(submissions=[{"student": "s1", "submissionDate": "2024-10-01T10:00:00Z", "score": "8"}])
        a, issues = parse_assignment(raw)
        assert a is not None
        self.assertEqual(issues, [])
        self.assertEqual(a.submissions[0].score, 8.0)

        now = datetime(2024, 10, 5, tzinfo=timezone.utc)
        self.assertEqual(derive_assignment_status(a, a.submissions[0], now), AssignmentStatus.GRADED)

    def test_unreadable_score_is_reported(self) -> None:
        for bad in ("eight", True, [8], "nan"):
            raw = self._raw(submissions=[{"student": "s1", "submissionDate": "2024-10-01T10:00:00Z", "score": bad}])
            a, issues = parse_assignment(raw)
            assert a is not None
            # the submission itself is kept, only the score is dropped
            self.assertEqual(len(a.submissions), 1)
            self.assertIsNone(a.submissions[0].score)
            self.assertEqual([i.field for i in issues], ["submissions[s1].score"])

    def test_assignment_type(self) -> None:
        a, issues = parse_assignment(self._raw(type="Document"))
        assert a is not None
        self.assertEqual(issues, [])
        self.assertEqual(a.assignment_type, AssignmentType.DOCUMENT)

        a, issues = parse_assignment(self._raw(type="essay"))
        assert a is not None
        self.assertIsNone(a.assignment_type)
        self.assertEqual([i.field for i in issues], ["type"])


class TestStrictScalars(unittest.TestCase):
    def test_parse_flag(self) -> None:
        self.assertTrue(parse_flag(True))
        self.assertTrue(parse_flag(" true "))
        self.assertFalse(parse_flag("False"))
        self.assertFalse(parse_flag(0))
        for bad in ("", "yes", 2, None, 1.0):
            with self.assertRaises(ValueError):
                parse_flag(bad)

    def test_parse_number(self) -> None:
        self.assertEqual(parse_number(8), 8.0)
        self.assertEqual(parse_number(" 7.5 "), 7.5)
        for bad in (False, "", "abc", None, "inf", float("nan")):
            with self.assertRaises(ValueError):
                parse_number(bad)


if __name__ == "__main__":
    unittest.main()
