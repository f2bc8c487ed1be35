# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Shared helpers for the agent-connect CLI.

- api.py: HTTP client for a running server
- utils.py: error handling and panels

All functions are re-exported here for convenience.
"""

from rich.console import Console

console = Console()

from agentconnect.cli.helpers.utils import (  # noqa: E402
    ServerError,
    handle_errors,
    show_error_panel,
)
from agentconnect.cli.helpers.api import api_request  # noqa: E402

__all__ = [
    "ServerError",
    "api_request",
    "console",
    "handle_errors",
    "show_error_panel",
]
