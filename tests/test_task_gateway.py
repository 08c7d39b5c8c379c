"""
External task gateway tests.

The gateway gets a MagicMock session and zero backoff, so no network access
and no sleeping.
"""

from unittest.mock import MagicMock

import pytest
import requests

from launch_engine.core.exceptions import TaskCreationError
from launch_engine.integrations import EXTENSION_KEY, build_task_creator, get_task_creator
from launch_engine.integrations.task_gateway import NullTaskCreator, TaskServiceGateway


def _response(status_code, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.content = b"{}" if body is not None else b""
    resp.json.return_value = body
    resp.text = str(body)
    return resp


def _gateway(*responses, token="secret"):
    session = MagicMock()
    session.request.side_effect = list(responses)
    return TaskServiceGateway("https://tasks.example.com/api/", token=token, session=session, backoff=(0, 0)), session


class TestCreateTask:
    def test_success_returns_id(self):
        gw, session = _gateway(_response(201, {"id": 77}))
        task_id = gw.create_task("Register domain", 5, notes="Phase: SETUP", project="Launch")
        assert task_id == "77"

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert (method, url) == ("POST", "https://tasks.example.com/api/tasks")
        assert kwargs["json"] == {
            "title": "Register domain", "priority": 5, "notes": "Phase: SETUP", "project": "Launch",
        }
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_no_token_no_auth_header(self):
        gw, session = _gateway(_response(201, {"id": "a"}), token=None)
        gw.create_task("x", 3)
        assert "Authorization" not in session.request.call_args.kwargs["headers"]

    def test_retries_server_errors(self):
        gw, session = _gateway(_response(503, {}), _response(502, {}), _response(201, {"id": "t-1"}))
        assert gw.create_task("x", 3) == "t-1"
        assert session.request.call_count == 3

    def test_gives_up_after_retries(self):
        gw, session = _gateway(_response(500, {}), _response(500, {}), _response(500, {}))
        with pytest.raises(TaskCreationError):
            gw.create_task("x", 3)
        assert session.request.call_count == 3

    def test_client_error_not_retried(self):
        gw, session = _gateway(_response(422, {"error": "bad"}))
        with pytest.raises(TaskCreationError):
            gw.create_task("x", 3)
        assert session.request.call_count == 1

    def test_network_errors_retried(self):
        gw, session = _gateway(requests.Timeout(), requests.ConnectionError("refused"), _response(200, {"id": "ok"}))
        assert gw.create_task("x", 3) == "ok"
        assert session.request.call_count == 3

    def test_missing_id(self):
        gw, _ = _gateway(_response(201, {"status": "queued"}))
        with pytest.raises(TaskCreationError):
            gw.create_task("x", 3)


class TestMarkDone:
    def test_patch_status_done(self):
        gw, session = _gateway(_response(204))
        gw.mark_done("t-9")
        method, url = session.request.call_args.args
        assert (method, url) == ("PATCH", "https://tasks.example.com/api/tasks/t-9")
        assert session.request.call_args.kwargs["json"] == {"status": "done"}

    def test_failure_raises(self):
        gw, _ = _gateway(_response(404, {}))
        with pytest.raises(TaskCreationError):
            gw.mark_done("gone")


class TestFactory:
    def test_null_creator_without_url(self):
        assert isinstance(build_task_creator({"TASK_SERVICE_URL": ""}), NullTaskCreator)

    def test_gateway_with_url(self):
        creator = build_task_creator({"TASK_SERVICE_URL": "https://t.example", "TASK_SERVICE_TIMEOUT": 3})
        assert isinstance(creator, TaskServiceGateway)
        assert creator.timeout == 3

    def test_null_creator_refuses(self):
        with pytest.raises(TaskCreationError):
            NullTaskCreator().create_task("x", 3)
        with pytest.raises(TaskCreationError):
            NullTaskCreator().mark_done("t")

    def test_app_creator_is_null_in_testing(self, app):
        assert isinstance(app.extensions[EXTENSION_KEY], NullTaskCreator)
        assert get_task_creator() is app.extensions[EXTENSION_KEY]
