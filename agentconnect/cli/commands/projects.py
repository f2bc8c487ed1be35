# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Project commands - edit the local project store."""

import click
from rich.table import Table

from agentconnect.cli import cli
from agentconnect.cli.helpers import console, handle_errors
from agentconnect.core.projects import ProjectStore
from agentconnect.utils.logging import get_logger


@cli.group()
def projects():
    """Manage projects sessions can run in (list/add/remove)."""
    pass


@projects.command("list")
@handle_errors
def list_projects():
    """List registered projects."""
    items = ProjectStore().list_projects()
    if not items:
        get_logger(__name__).info(
            "No projects. Add one with: agent-connect projects add NAME PATH"
        )
        return

    table = Table(title="Projects")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Path")
    for project in items:
        table.add_row(project.id, project.name, project.path)
    console.print(table)


@projects.command("add")
@click.argument("name")
@click.argument("path", type=click.Path(file_okay=False))
@handle_errors
def add_project(name: str, path: str):
    """Register a project directory."""
    project = ProjectStore().add_project(name, path)
    get_logger(__name__).success(f"Added project {project.name} ({project.id})")


@projects.command("remove")
@click.argument("project_id")
@handle_errors
def remove_project(project_id: str):
    """Unregister a project."""
    project = ProjectStore().remove_project(project_id)
    get_logger(__name__).success(f"Removed project {project.name}")
