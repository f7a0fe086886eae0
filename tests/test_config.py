import unittest
from datetime import timezone

from classportal.config import DEFAULT_BASE_URL, resolve_settings, resolve_tz


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        s = resolve_settings({}, environ={})
        self.assertEqual(s.base_url, DEFAULT_BASE_URL)
        self.assertIsNone(s.token)
        self.assertIsNone(s.student_id)
        self.assertIs(s.tz, timezone.utc)

    def test_environment_beats_session(self) -> None:
        session = {"base_url": "http://stored/api", "token": "stored", "student_id": "s1"}
        env = {"CLASSPORTAL_TOKEN": "fresh", "CLASSPORTAL_STUDENT_ID": "  "}
        s = resolve_settings(session, environ=env)
        self.assertEqual(s.base_url, "http://stored/api")
        self.assertEqual(s.token, "fresh")
        self.assertEqual(s.student_id, "s1")

    def test_unknown_zone(self) -> None:
        with self.assertRaises(ValueError):
            resolve_tz("Mars/Olympus_Mons")
        self.assertIs(resolve_tz(""), timezone.utc)


if __name__ == "__main__":
    unittest.main()
