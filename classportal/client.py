"""
Thin REST client for the portal backend.

Only fetches raw records; parsing and all derivation happen elsewhere.
No retries: a failed request raises PortalAPIError and the caller decides.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from classportal.config import REQUEST_TIMEOUT

COURSES_PATH = "/courses"
ASSIGNMENTS_PATH = "/assignments"


class PortalAPIError(Exception):
    """
    Raised for transport failures and for envelopes with success == false.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def _unwrap_list(data: Any, key: str) -> List[Dict[str, Any]]:
    """
    `data` is either the list itself or an object holding it under `key`.
    """
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise PortalAPIError(f"Unexpected response shape for {key!r}")
    return [x for x in data if isinstance(x, dict)]


class PortalClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a path and return the `data` member of the response envelope.
        """
        url = self.base_url + path
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            resp = self.session.get(url, params=clean, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PortalAPIError(f"Could not reach {url}: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = body.get("message") if isinstance(body, dict) else None
            raise PortalAPIError(message or f"HTTP {resp.status_code} for {url}", status=resp.status_code)

        if not isinstance(body, dict):
            raise PortalAPIError(f"Response from {url} is not a JSON object", status=resp.status_code)
        if body.get("success") is False:
            raise PortalAPIError(str(body.get("message") or "Request failed"), status=resp.status_code)
        return body.get("data")

    def get_courses(self, **filters: Any) -> List[Dict[str, Any]]:
        """
        Courses visible to the logged-in user (semesterId, status, search, ...).
        """
        return _unwrap_list(self._get(COURSES_PATH, filters), "courses")

    def get_course(self, course_id: str) -> Dict[str, Any]:
        data = self._get(f"{COURSES_PATH}/{course_id}")
        if isinstance(data, dict) and isinstance(data.get("course"), dict):
            return data["course"]
        if not isinstance(data, dict):
            raise PortalAPIError(f"Unexpected response shape for course {course_id!r}")
        return data

    def get_my_assignments(self, **filters: Any) -> List[Dict[str, Any]]:
        return _unwrap_list(self._get(f"{ASSIGNMENTS_PATH}/student/my-assignments", filters), "assignments")

    def get_course_assignments(self, course_id: str, **filters: Any) -> List[Dict[str, Any]]:
        return _unwrap_list(self._get(f"{ASSIGNMENTS_PATH}/course/{course_id}", filters), "assignments")
