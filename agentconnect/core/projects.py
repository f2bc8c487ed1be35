# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Project store - maps project ids to working directories.

Projects are kept in ``projects.json`` in the data directory as a list of
``{"id", "name", "path", "createdAt"}`` objects.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from agentconnect.core.errors import NotFoundError
from agentconnect.paths import HostPaths

logger = logging.getLogger(__name__)


class Project(BaseModel):
    """A directory sessions can be launched in."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    path: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ProjectStore:
    """JSON-file backed project list."""

    def __init__(self, projects_file: Optional[Path] = None):
        self.projects_file = projects_file or HostPaths.projects_file()

    def list_projects(self) -> List[Project]:
        """All projects. A missing or unreadable file reads as empty."""
        if not self.projects_file.exists():
            return []
        try:
            raw = json.loads(self.projects_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read {self.projects_file}: {e}")
            return []
        if not isinstance(raw, list):
            logger.warning(f"Ignoring {self.projects_file}: expected a list")
            return []

        projects = []
        for entry in raw:
            try:
                projects.append(Project.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping invalid project entry: {e}")
        return projects

    def _save(self, projects: List[Project]) -> None:
        self.projects_file.parent.mkdir(parents=True, exist_ok=True)
        data = [p.model_dump(mode="json", by_alias=True) for p in projects]
        self.projects_file.write_text(json.dumps(data, indent=2))

    def get(self, project_id: str) -> Optional[Project]:
        for project in self.list_projects():
            if project.id == project_id:
                return project
        return None

    def resolve(self, project_id: str) -> Project:
        """Look up the project a session should run in.

        Raises:
            NotFoundError: unknown project id.
        """
        project = self.get(project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        return project

    def add_project(self, name: str, path: str) -> Project:
        """Register a directory.

        Raises:
            ValueError: missing name/path, path not a directory, or already registered.
        """
        if not name or not path:
            raise ValueError("Name and path are required")

        resolved = Path(path).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Path does not exist: {resolved}")
        if not resolved.is_dir():
            raise ValueError(f"Path is not a directory: {resolved}")

        projects = self.list_projects()
        for existing in projects:
            if existing.path == str(resolved):
                raise ValueError(f"Project already exists at this path: {existing.name}")

        project = Project(id=str(uuid.uuid4()), name=name, path=str(resolved))
        projects.append(project)
        self._save(projects)
        logger.info(f"Added project {name} ({resolved})")
        return project

    def remove_project(self, project_id: str) -> Project:
        """Unregister a project.

        Raises:
            NotFoundError: unknown project id.
        """
        projects = self.list_projects()
        for index, project in enumerate(projects):
            if project.id == project_id:
                del projects[index]
                self._save(projects)
                logger.info(f"Removed project {project.name}")
                return project
        raise NotFoundError("project", project_id)
