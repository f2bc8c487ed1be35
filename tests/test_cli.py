# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tests for the agent-connect CLI and its HTTP helper."""

import logging
from unittest.mock import Mock, patch

import pytest
import requests
from click.testing import CliRunner

from agentconnect.cli import cli
from agentconnect.cli.helpers import ServerError, api_request
from agentconnect.core.errors import NotFoundError
from agentconnect.core.projects import ProjectStore

SESSION = {
    "id": "abc123",
    "projectId": "p1",
    "projectName": "demo",
    "projectPath": "/work/demo",
    "status": "running",
    "pid": 4242,
    "startedAt": "2025-01-01T10:00:00Z",
    "stoppedAt": None,
}


@pytest.fixture
def runner():
    return CliRunner()


class TestCliBasics:
    def test_help_without_command(self, runner):
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "sessions" in result.output
        assert "projects" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "agent-connect" in result.output


class TestSessionCommands:
    """Session commands talk to the server through api_request"""

    def test_list(self, runner):
        with patch(
            "agentconnect.cli.commands.sessions.api_request",
            return_value={"sessions": [SESSION]},
        ) as mock_api:
            result = runner.invoke(cli, ["sessions", "list", "--project", "p1"])

        assert result.exit_code == 0, result.output
        assert "abc123" in result.output
        assert "running" in result.output
        mock_api.assert_called_once_with(
            "GET", "/api/sessions", base_url=None, params={"projectId": "p1"}
        )

    def test_list_empty(self, runner):
        with patch(
            "agentconnect.cli.commands.sessions.api_request", return_value={"sessions": []}
        ):
            result = runner.invoke(cli, ["sessions", "list"])
        assert result.exit_code == 0
        assert "No sessions" in result.output

    def test_new(self, runner):
        with patch(
            "agentconnect.cli.commands.sessions.api_request", return_value=SESSION
        ) as mock_api:
            result = runner.invoke(cli, ["sessions", "new", "p1", "--url", "http://box:3109"])

        assert result.exit_code == 0, result.output
        assert "Started session abc123" in result.output
        mock_api.assert_called_once_with(
            "POST", "/api/sessions", base_url="http://box:3109", json={"projectId": "p1"}
        )

    def test_stop(self, runner):
        stopped = {**SESSION, "status": "stopped"}
        with patch("agentconnect.cli.commands.sessions.api_request", return_value=stopped):
            result = runner.invoke(cli, ["sessions", "stop", "abc123"])
        assert result.exit_code == 0
        assert "stopped" in result.output

    def test_results_logged(self, runner, caplog):
        with patch(
            "agentconnect.cli.commands.sessions.api_request", return_value=SESSION
        ), caplog.at_level(logging.INFO, logger="agentconnect"):
            runner.invoke(cli, ["sessions", "new", "p1"])

        assert [r.levelname for r in caplog.records if "abc123" in r.getMessage()] == ["SUCCESS"]

    def test_output(self, runner):
        with patch(
            "agentconnect.cli.commands.sessions.api_request",
            return_value={"id": "abc123", "status": "running", "lines": ["one", "two"]},
        ) as mock_api:
            result = runner.invoke(cli, ["sessions", "output", "abc123", "-n", "2"])
        assert result.output.splitlines() == ["one", "two"]
        assert mock_api.call_args.kwargs["params"] == {"lines": 2}

    def test_server_down(self, runner):
        with patch(
            "agentconnect.cli.commands.sessions.api_request",
            side_effect=ServerError("Cannot reach agent-connect", hint="agent-connect serve"),
        ):
            result = runner.invoke(cli, ["sessions", "list"])
        assert result.exit_code == 1
        assert "Server Error" in result.output
        assert "agent-connect serve" in result.output

    def test_unknown_session(self, runner):
        with patch(
            "agentconnect.cli.commands.sessions.api_request",
            side_effect=NotFoundError("session", "nope"),
        ):
            result = runner.invoke(cli, ["sessions", "stop", "nope"])
        assert result.exit_code == 1
        assert "Session not found: nope" in result.output


class TestProjectCommands:
    """Project commands edit the local store (AGENT_CONNECT_DATA_DIR)"""

    def test_add_list_remove(self, runner, project_dir):
        result = runner.invoke(cli, ["projects", "add", "demo", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "Added project demo" in result.output

        project = ProjectStore().list_projects()[0]
        result = runner.invoke(cli, ["projects", "list"])
        assert project.id in result.output

        result = runner.invoke(cli, ["projects", "remove", project.id])
        assert result.exit_code == 0
        assert ProjectStore().list_projects() == []

    def test_list_empty(self, runner):
        result = runner.invoke(cli, ["projects", "list"])
        assert "No projects" in result.output

    def test_add_missing_path(self, runner, tmp_path):
        result = runner.invoke(cli, ["projects", "add", "demo", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_remove_unknown(self, runner):
        result = runner.invoke(cli, ["projects", "remove", "nope"])
        assert result.exit_code == 1
        assert "Not Found" in result.output

    def test_failure_recorded_in_log_file(self, runner, tmp_path):
        runner.invoke(cli, ["projects", "remove", "nope"])
        for handler in logging.getLogger("agentconnect").handlers:
            handler.flush()

        log = (tmp_path / "logs" / "agent-connect.log").read_text()
        assert "remove_project failed: Project not found: nope" in log


class TestServeCommand:
    def test_serve_uses_config_defaults(self, runner, tmp_path):
        (tmp_path / "config.yml").write_text("web_server:\n  port: 4000\n")
        with patch("agentconnect.web.server.run_server") as mock_run, patch(
            "agentconnect.cli.commands.serve.configure_logging"
        ):
            result = runner.invoke(cli, ["serve"])

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once_with("127.0.0.1", 4000, log_level="info")

    def test_serve_options_win(self, runner):
        with patch("agentconnect.web.server.run_server") as mock_run, patch(
            "agentconnect.cli.commands.serve.configure_logging"
        ):
            result = runner.invoke(cli, ["serve", "--host", "0.0.0.0", "--port", "5000", "--debug"])

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once_with("0.0.0.0", 5000, log_level="debug")
        assert "Not bound to localhost" in result.output

    def test_public_bind_warning_is_logged(self, runner, caplog):
        with patch("agentconnect.web.server.run_server"), patch(
            "agentconnect.cli.commands.serve.configure_logging"
        ), caplog.at_level(logging.INFO, logger="agentconnect"):
            runner.invoke(cli, ["serve", "--host", "0.0.0.0"])

        warnings = [r.getMessage() for r in caplog.records if r.levelname == "WARNING"]
        assert any(m.startswith("Not bound to localhost") for m in warnings)


def _response(status_code, body=None, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = body if body is not None else {}
    resp.text = text
    return resp


class TestApiRequest:
    """HTTP helper error mapping"""

    def test_success(self):
        with patch(
            "agentconnect.cli.helpers.api.requests.request",
            return_value=_response(200, {"sessions": []}),
        ) as mock_request:
            assert api_request("GET", "/api/sessions") == {"sessions": []}
        mock_request.assert_called_once_with(
            "GET", "http://127.0.0.1:3109/api/sessions", timeout=10
        )

    def test_connection_error(self):
        with patch(
            "agentconnect.cli.helpers.api.requests.request",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(ServerError) as exc_info:
                api_request("GET", "/api/sessions", base_url="http://box:1/")
        assert exc_info.value.hint == "agent-connect serve"
        assert "http://box:1" in str(exc_info.value)

    def test_unknown_session(self):
        with patch(
            "agentconnect.cli.helpers.api.requests.request", return_value=_response(404)
        ):
            with pytest.raises(NotFoundError) as exc_info:
                api_request("DELETE", "/api/sessions/abc")
        assert exc_info.value.kind == "session"
        assert exc_info.value.ident == "abc"

    def test_unknown_project_on_create(self):
        with patch(
            "agentconnect.cli.helpers.api.requests.request", return_value=_response(404)
        ):
            with pytest.raises(NotFoundError) as exc_info:
                api_request("POST", "/api/sessions", json={"projectId": "p9"})
        assert exc_info.value.kind == "project"
        assert exc_info.value.ident == "p9"

    def test_server_failure(self):
        with patch(
            "agentconnect.cli.helpers.api.requests.request",
            return_value=_response(500, {"detail": "spawn failed"}),
        ):
            with pytest.raises(ServerError, match="spawn failed"):
                api_request("POST", "/api/sessions", json={"projectId": "p1"})
