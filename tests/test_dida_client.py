import json
import unittest
from unittest.mock import MagicMock

import requests

from dida_api.client import DidaAPIError, DidaClient, NotAuthenticatedError
from dida_api.data_models import Project, TaskStatus, TokenResponse


def _response(status=200, body=None, reason="OK"):
    resp = MagicMock()
    resp.status_code = status
    resp.reason = reason
    resp.text = json.dumps(body) if body is not None else ""
    resp.content = resp.text.encode()
    resp.json.return_value = body
    return resp


class TestDidaClient(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.client = DidaClient(
            TokenResponse(access_token="tok"), base_url="https://api.example.com/open/v1/", session=self.session
        )

    def test_get_projects_sends_bearer_token(self):
        self.session.request.return_value = _response(body=[{"id": "p1", "name": "Work", "closed": False}])

        projects = self.client.get_projects()

        self.assertEqual([p.name for p in projects], ["Work"])
        method, url = self.session.request.call_args.args
        self.assertEqual((method, url), ("GET", "https://api.example.com/open/v1/project"))
        headers = self.session.request.call_args.kwargs["headers"]
        self.assertEqual(headers["Authorization"], "Bearer tok")

    def test_get_project_tasks_parses_aliases(self):
        self.session.request.return_value = _response(body={
            "project": {"id": "p1"},
            "tasks": [{
                "id": "t1", "projectId": "p1", "title": "A", "childIds": ["t2"],
                "priority": 3, "status": 0, "dueDate": "2026-01-06T00:00:00.000+0000",
            }],
        })

        tasks = self.client.get_project_tasks("p1")

        self.assertEqual(len(tasks), 1)
        task = tasks[0]
        self.assertEqual(task.project_id, "p1")
        self.assertEqual(task.child_ids, ["t2"])
        self.assertEqual(task.parent_id, "")
        self.assertEqual(task.status, TaskStatus.OPEN)
        self.assertEqual(self.session.request.call_args.args[1], "https://api.example.com/open/v1/project/p1/data")

    def test_non_success_raises(self):
        self.session.request.return_value = _response(status=401, body={"error": "unauthorized"}, reason="Unauthorized")

        with self.assertRaises(DidaAPIError) as ctx:
            self.client.get_projects()
        self.assertEqual(ctx.exception.status_code, 401)

    def test_missing_token_raises_before_request(self):
        client = DidaClient(None, session=self.session)
        with self.assertRaises(NotAuthenticatedError):
            client.get_projects()
        self.session.request.assert_not_called()

    def test_get_all_tasks_skips_failing_sources(self):
        def fake_request(method, url, **kwargs):
            if url.endswith("/project/inbox/data"):
                return _response(body={"tasks": [{"id": "i1", "projectId": "inbox1"}]})
            if url.endswith("/project/p1/data"):
                return _response(status=500, reason="Server Error")
            if url.endswith("/project/p2/data"):
                raise requests.ConnectionError("boom")
            return _response(body={"tasks": [{"id": "x1", "projectId": "p3"}]})

        self.session.request.side_effect = fake_request
        projects = [Project(id="p1"), Project(id="p2"), Project(id="p3")]

        tasks = self.client.get_all_tasks(projects)

        self.assertEqual([t.id for t in tasks], ["i1", "x1"])

    def test_get_all_tasks_propagates_project_listing_failure(self):
        self.session.request.return_value = _response(status=500, reason="Server Error")
        with self.assertRaises(DidaAPIError):
            self.client.get_all_tasks()

    def test_get_task(self):
        self.session.request.return_value = _response(body={"id": "t9", "projectId": "p1", "parentId": "t1"})

        task = self.client.get_task("p1", "t9")

        self.assertEqual(task.parent_id, "t1")
        self.assertEqual(self.session.request.call_args.args[1], "https://api.example.com/open/v1/project/p1/task/t9")

    def test_update_task_status_uses_batch_update_array(self):
        self.session.request.return_value = _response(body={"id2etag": {}})

        self.client.update_task_status("p1", "t1", TaskStatus.DONE)

        method, url = self.session.request.call_args.args
        self.assertEqual(method, "POST")
        self.assertTrue(url.endswith("/project/p1/batch/task"))
        self.assertEqual(
            self.session.request.call_args.kwargs["json"],
            {"add": [], "update": [{"id": "t1", "projectId": "p1", "status": 2}], "delete": []},
        )

    def test_empty_body_is_accepted(self):
        self.session.request.return_value = _response(body=None)
        self.assertIsNone(self.client.update_task_status("p1", "t1", TaskStatus.DONE))


if __name__ == "__main__":
    unittest.main()
