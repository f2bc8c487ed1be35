# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Exceptions raised by the session core.

These bubble up to the web layer (mapped to HTTP status codes) and to the
CLI's handle_errors decorator (shown as a formatted panel).
"""


class AgentConnectError(Exception):
    """Base class for agent-connect errors."""


class SpawnError(AgentConnectError):
    """Raised when a session process cannot be started.

    No session is registered when this is raised.
    """

    def __init__(self, message: str, cwd: str = None):
        super().__init__(message)
        self.cwd = cwd


class NotFoundError(AgentConnectError):
    """Raised for unknown session or project ids."""

    def __init__(self, kind: str, ident: str):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind.capitalize()} not found: {ident}")
