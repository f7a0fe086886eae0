import unittest
from unittest import mock

import requests

from classportal.client import PortalAPIError, PortalClient


def _response(status: int, body) -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


class TestPortalClient(unittest.TestCase):
    def _client(self, resp) -> tuple[PortalClient, mock.Mock]:
        session = requests.Session()
        session.get = mock.Mock(return_value=resp)  # type: ignore[method-assign]
        return PortalClient("http://portal.test/api/", token="abc", session=session), session.get

    def test_headers_and_url(self) -> None:
        client, get = self._client(_response(200, {"success": True, "data": []}))
        self.assertEqual(client.session.headers["Authorization"], "Bearer abc")
        self.assertEqual(client.get_courses(status="ongoing", search=None), [])
        args, kwargs = get.call_args
        self.assertEqual(args[0], "http://portal.test/api/courses")
        self.assertEqual(kwargs["params"], {"status": "ongoing"})
        self.assertEqual(kwargs["timeout"], 15)

    def test_unwraps_nested_lists(self) -> None:
        body = {"success": True, "data": {"assignments": [{"_id": "a1"}, "junk"], "total": 1}}
        client, get = self._client(_response(200, body))
        self.assertEqual(client.get_my_assignments(), [{"_id": "a1"}])
        self.assertTrue(get.call_args[0][0].endswith("/assignments/student/my-assignments"))

    def test_http_error_uses_server_message(self) -> None:
        client, _ = self._client(_response(401, {"success": False, "message": "Token expired"}))
        with self.assertRaises(PortalAPIError) as ctx:
            client.get_courses()
        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(ctx.exception.message, "Token expired")

    def test_success_false_raises(self) -> None:
        client, _ = self._client(_response(200, {"success": False, "message": "Nope"}))
        with self.assertRaises(PortalAPIError):
            client.get_course_assignments("c1")

    def test_non_json_body_raises(self) -> None:
        client, _ = self._client(_response(200, ValueError("no json")))
        with self.assertRaises(PortalAPIError):
            client.get_courses()

    def test_connection_error_is_wrapped(self) -> None:
        session = requests.Session()
        session.get = mock.Mock(side_effect=requests.ConnectionError("down"))  # type: ignore[method-assign]
        client = PortalClient("http://portal.test/api", session=session)
        self.assertNotIn("Authorization", client.session.headers)
        with self.assertRaises(PortalAPIError):
            client.get_course("c1")

    def test_get_course_unwraps_object(self) -> None:
        client, _ = self._client(_response(200, {"success": True, "data": {"course": {"_id": "c1"}}}))
        self.assertEqual(client.get_course("c1"), {"_id": "c1"})


if __name__ == "__main__":
    unittest.main()
