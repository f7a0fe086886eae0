"""
iCalendar (.ics) export.

We convert materialized schedule occurrences into a calendar file that can be
imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from classportal.model import ScheduleOccurrence


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(occ: ScheduleOccurrence, hh_mm: str) -> str:
    """
    Convert occurrence date + 'HH:MM' to ICS floating local time 'YYYYMMDDTHHMM00'.
    """
    dt = datetime.strptime(f"{occ.date_key} {hh_mm}", "%Y-%m-%d %H:%M")
    return dt.strftime("%Y%m%dT%H%M00")


def export_occurrences_to_ics(
    occurrences: Iterable[ScheduleOccurrence],
    out_path: str | Path,
    stamp: Optional[datetime] = None,
) -> int:
    """
    Export occurrences to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    dtstamp = (stamp or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    lines: list[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//classportal//EN",
        "CALSCALE:GREGORIAN",
    ]

    count = 0
    for occ in occurrences:
        try:
            dtstart = _dt_local(occ, occ.start_time)
            dtend = _dt_local(occ, occ.end_time)
        except ValueError:
            continue

        summary = f"{occ.course_code} {occ.course_name}".strip() or "Class"
        where = ", ".join(x for x in (occ.room, occ.location) if x)

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(occ.occurrence_id)}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{dtstart}")
        lines.append(f"DTEND:{dtend}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        if where:
            lines.append(f"LOCATION:{_ics_escape(where)}")
        if occ.instructor_name:
            lines.append(f"DESCRIPTION:{_ics_escape('Instructor: ' + occ.instructor_name)}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_bytes(("\r\n".join(lines) + "\r\n").encode("utf-8"))
    return count
