import tempfile
import unittest
from datetime import date, datetime, timezone
from pathlib import Path

from classportal.export_ics import export_occurrences_to_ics
from classportal.model import CourseStatus, ScheduleOccurrence, Weekday


class TestExportICS(unittest.TestCase):
    def test_export_creates_file_and_contains_calendar(self) -> None:
        occs = [
            ScheduleOccurrence(
                course_id="66c1",
                course_code="CT00003",
                course_name="Intro to Computing",
                date=date(2024, 9, 2),
                day_of_week=Weekday.MONDAY,
                start_time="07:00",
                end_time="09:30",
                room="403",
                location="Building TA2",
                instructor_name="Nguyen Van Giang",
                course_status=CourseStatus.ONGOING,
            )
        ]

        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            n = export_occurrences_to_ics(occs, out, stamp=datetime(2024, 9, 1, tzinfo=timezone.utc))
            self.assertEqual(n, 1)
            text = out.read_bytes().decode("utf-8")
            self.assertIn("BEGIN:VCALENDAR\r\n", text)
            self.assertIn("BEGIN:VEVENT", text)
            self.assertIn("UID:66c1_2024-09-02_07:00", text)
            self.assertIn("DTSTART:20240902T070000", text)
            self.assertIn("DTEND:20240902T093000", text)
            self.assertIn("SUMMARY:CT00003 Intro to Computing", text)
            self.assertIn("LOCATION:403\\, Building TA2", text)
            self.assertIn("DTSTAMP:20240901T000000Z", text)

    def test_export_empty(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "sub" / "empty.ics"
            self.assertEqual(export_occurrences_to_ics([], out), 0)
            self.assertIn("END:VCALENDAR", out.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
