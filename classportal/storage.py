"""
Persistent storage for the CLI session.

This module manages the file:

    ~/.classportal/session.json

It holds the API base URL, the bearer token and the id of the viewing
student, so that commands do not need them on every call.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

SESSION_KEYS = ("base_url", "token", "student_id")


def _default_session_path() -> Path:
    """
    Return the default path of session.json in the user's home directory.

    Using a function instead of a constant makes testing easier,
    because tests can override the path.
    """
    return Path.home() / ".classportal" / "session.json"


def load_session(path: str | Path | None = None) -> dict[str, str]:
    """
    Load the stored session.

    Returns an empty dict if the file does not exist or is invalid,
    so a broken file never stops the CLI.
    """
    session_path = Path(path) if path is not None else _default_session_path()
    if not session_path.exists():
        return {}

    try:
        data = json.loads(session_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return {}
    if not isinstance(data, dict):
        return {}

    out: dict[str, str] = {}
    for key in SESSION_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            out[key] = value.strip()
    return out


def save_session(session: Mapping[str, str | None], path: str | Path | None = None) -> None:
    """
    Save the session, keeping only known non-empty keys.

    Creates parent directories if needed.
    """
    session_path = Path(path) if path is not None else _default_session_path()
    session_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {}
    for key in SESSION_KEYS:
        value = session.get(key)
        if isinstance(value, str) and value.strip():
            payload[key] = value.strip()

    session_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
