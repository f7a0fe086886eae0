"""
Conflict detection.

Given materialized occurrences, detect overlaps on the same date.
Overlap rule:
    start < other_end AND end > other_start
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from classportal.model import ScheduleOccurrence
from classportal.parse import parse_hhmm


def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # touching endpoints (a_end == b_start) are not a conflict
    return a_start < b_end and a_end > b_start


def find_conflicts(
    occurrences: Iterable[ScheduleOccurrence],
) -> list[tuple[ScheduleOccurrence, ScheduleOccurrence]]:
    """
    Find overlapping occurrence pairs (A,B), each pair appears once.
    Overlap only if same date AND time intervals overlap.
    Occurrences with unusable times are ignored.
    """
    by_date: dict[str, list[tuple[int, int, ScheduleOccurrence]]] = defaultdict(list)
    for occ in occurrences:
        try:
            start = parse_hhmm(occ.start_time)
            end = parse_hhmm(occ.end_time)
        except ValueError:
            continue
        if end <= start:
            continue
        by_date[occ.date_key].append((start, end, occ))

    conflicts: list[tuple[ScheduleOccurrence, ScheduleOccurrence]] = []

    # O(n^2) per day is fine for a student's weekly load
    for key in sorted(by_date):
        day = by_date[key]
        for i in range(len(day)):
            s1, e1, occ1 = day[i]
            for j in range(i + 1, len(day)):
                s2, e2, occ2 = day[j]
                if _overlaps(s1, e1, s2, e2):
                    conflicts.append((occ1, occ2))

    return conflicts
