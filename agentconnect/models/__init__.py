# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pydantic models for agent-connect configuration."""

from agentconnect.models.config import (
    AgentConfig,
    ServerConfigModel,
    SessionsConfig,
    TerminalConfig,
    WebServerConfig,
)

__all__ = [
    "AgentConfig",
    "ServerConfigModel",
    "SessionsConfig",
    "TerminalConfig",
    "WebServerConfig",
]
