"""
Configuration constants for classportal.

All tunable values live here so that the derivation code never reads the
environment or the wall clock on its own. Environment variables only affect
the CLI and the API client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# =============================================================================
# TIME
# =============================================================================

# Naive timestamps from the API are read as UTC, and calendar dates are
# taken in this zone unless the caller passes another one.
DEFAULT_TZ: tzinfo = timezone.utc

# Window (in days) for the "starting soon" / "ending soon" / "recently ended"
# course flags.
STATUS_THRESHOLD_DAYS = 7


# =============================================================================
# API
# =============================================================================

DEFAULT_BASE_URL = "http://localhost:3000/api"

# Seconds, same as the mobile client.
REQUEST_TIMEOUT = 15

ENV_BASE_URL = "CLASSPORTAL_BASE_URL"
ENV_TOKEN = "CLASSPORTAL_TOKEN"
ENV_STUDENT_ID = "CLASSPORTAL_STUDENT_ID"
ENV_TZ = "CLASSPORTAL_TZ"


@dataclass
class Settings:
    base_url: str
    token: Optional[str]
    student_id: Optional[str]
    tz: tzinfo


def resolve_tz(name: Optional[str]) -> tzinfo:
    """
    Resolve an IANA zone name. Empty name -> DEFAULT_TZ.
    Raises ValueError for unknown zones.
    """
    if not name or not name.strip():
        return DEFAULT_TZ
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name!r}") from exc


def resolve_settings(
    session: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Merge the stored session with environment overrides.

    Precedence: environment > stored session > defaults.
    """
    session = session or {}
    env = os.environ if environ is None else environ

    def pick(env_key: str, session_key: str) -> Optional[str]:
        for value in (env.get(env_key), session.get(session_key)):
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    return Settings(
        base_url=pick(ENV_BASE_URL, "base_url") or DEFAULT_BASE_URL,
        token=pick(ENV_TOKEN, "token"),
        student_id=pick(ENV_STUDENT_ID, "student_id"),
        tz=resolve_tz(env.get(ENV_TZ)),
    )
