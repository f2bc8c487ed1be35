# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Session commands - talk to a running server over HTTP."""

from datetime import datetime
from typing import Optional

import click
from rich.table import Table

from agentconnect.cli import cli
from agentconnect.cli.helpers import api_request, console, handle_errors
from agentconnect.utils.logging import get_logger


def _format_time(value: Optional[str]) -> str:
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


@cli.group()
def sessions():
    """Manage agent sessions (list/new/stop/output)."""
    pass


@sessions.command("list")
@click.option("--project", "project_id", default=None, help="Only sessions of this project id")
@click.option("--url", default=None, help="Server URL (default from config.yml)")
@handle_errors
def list_sessions(project_id: Optional[str], url: Optional[str]):
    """List sessions on the server."""
    params = {"projectId": project_id} if project_id else None
    data = api_request("GET", "/api/sessions", base_url=url, params=params)
    items = data.get("sessions", [])

    if not items:
        get_logger(__name__).info("No sessions")
        return

    table = Table(title="Sessions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Project")
    table.add_column("Status")
    table.add_column("PID", justify="right")
    table.add_column("Started")
    table.add_column("Stopped")

    for item in items:
        status = item.get("status", "")
        style = "green" if status == "running" else "dim"
        table.add_row(
            item.get("id", ""),
            item.get("projectName", ""),
            f"[{style}]{status}[/{style}]",
            str(item.get("pid") or "-"),
            _format_time(item.get("startedAt")),
            _format_time(item.get("stoppedAt")),
        )

    console.print(table)


@sessions.command("new")
@click.argument("project_id")
@click.option("--url", default=None, help="Server URL (default from config.yml)")
@handle_errors
def new_session(project_id: str, url: Optional[str]):
    """Start the agent in a registered project."""
    data = api_request("POST", "/api/sessions", base_url=url, json={"projectId": project_id})
    get_logger(__name__).success(
        f"Started session {data['id']} in {data.get('projectPath', '')} (pid {data.get('pid')})"
    )


@sessions.command("stop")
@click.argument("session_id")
@click.option("--url", default=None, help="Server URL (default from config.yml)")
@handle_errors
def stop_session(session_id: str, url: Optional[str]):
    """Stop a running session."""
    data = api_request("DELETE", f"/api/sessions/{session_id}", base_url=url)
    get_logger(__name__).success(f"Session {data['id']} is {data['status']}")


@sessions.command("output")
@click.argument("session_id")
@click.option("--lines", "-n", type=int, default=20, show_default=True)
@click.option("--url", default=None, help="Server URL (default from config.yml)")
@handle_errors
def session_output(session_id: str, lines: int, url: Optional[str]):
    """Show the last lines a session printed."""
    data = api_request(
        "GET", f"/api/sessions/{session_id}/output", base_url=url, params={"lines": lines}
    )
    for line in data.get("lines", []):
        click.echo(line)
