# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Session core - pty processes, scrollback, fan-out hubs and the registry."""

from agentconnect.core.errors import AgentConnectError, NotFoundError, SpawnError
from agentconnect.core.hub import SessionHub, Viewer
from agentconnect.core.projects import Project, ProjectStore
from agentconnect.core.pty_process import PtyProcess
from agentconnect.core.scrollback import ScrollbackBuffer
from agentconnect.core.sessions import SessionRegistry, SessionStatus, SessionView

__all__ = [
    "AgentConnectError",
    "NotFoundError",
    "Project",
    "ProjectStore",
    "PtyProcess",
    "ScrollbackBuffer",
    "SessionHub",
    "SessionRegistry",
    "SessionStatus",
    "SessionView",
    "SpawnError",
    "Viewer",
]
