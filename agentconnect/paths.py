# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized path definitions for agent-connect.

Everything lives under ``~/.agent-connect`` unless overridden:

    ~/.agent-connect/config.yml       server configuration (AGENT_CONNECT_CONFIG)
    ~/.agent-connect/data/            project store (AGENT_CONNECT_DATA_DIR)
    ~/.agent-connect/logs/            rotating log files (AGENT_CONNECT_LOG_FILE)

Usage:
    from agentconnect.paths import HostPaths

    config_file = HostPaths.config_file()
    projects = HostPaths.projects_file()
"""

import os
from pathlib import Path


class HostPaths:
    """Paths on the machine running the agent-connect server."""

    @staticmethod
    def config_dir() -> Path:
        """~/.agent-connect/"""
        return Path.home() / ".agent-connect"

    @staticmethod
    def config_file() -> Path:
        """~/.agent-connect/config.yml"""
        env_file = os.getenv("AGENT_CONNECT_CONFIG")
        if env_file:
            return Path(env_file).expanduser()
        return HostPaths.config_dir() / "config.yml"

    @staticmethod
    def data_dir() -> Path:
        """~/.agent-connect/data/"""
        env_dir = os.getenv("AGENT_CONNECT_DATA_DIR")
        if env_dir:
            return Path(env_dir).expanduser()
        return HostPaths.config_dir() / "data"

    @staticmethod
    def projects_file() -> Path:
        """~/.agent-connect/data/projects.json"""
        return HostPaths.data_dir() / "projects.json"

    @staticmethod
    def log_dir() -> Path:
        """~/.agent-connect/logs/"""
        return HostPaths.config_dir() / "logs"

    @staticmethod
    def log_file() -> Path:
        """~/.agent-connect/logs/agent-connect.log"""
        env_file = os.getenv("AGENT_CONNECT_LOG_FILE")
        if env_file:
            return Path(env_file).expanduser()
        return HostPaths.log_dir() / "agent-connect.log"
