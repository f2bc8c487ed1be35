# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized server-side configuration for agent-connect."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from agentconnect.models.config import ServerConfigModel
from agentconnect.paths import HostPaths

logger = logging.getLogger(__name__)


class HostConfig:
    """Manages server configuration from ~/.agent-connect/config.yml."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or HostPaths.config_file()
        self._model: Optional[ServerConfigModel] = None
        self._config = self._load()

    def _load(self) -> dict:
        """Load configuration from file."""
        if not self.config_path.exists():
            self._model = ServerConfigModel()
            return self._model.model_dump()

        try:
            with open(self.config_path) as f:
                raw_config = yaml.safe_load(f) or {}

            try:
                self._model = ServerConfigModel.model_validate(raw_config)
                return self._model.model_dump()
            except ValidationError as e:
                logger.warning(f"Config validation errors: {e}")
                # Keep the dict view usable, but the typed model falls back to defaults
                self._model = None
                defaults = ServerConfigModel().model_dump()
                return self._deep_merge(defaults, raw_config)

        except Exception as e:
            logger.warning(f"Failed to load config from {self.config_path}: {e}")
            self._model = ServerConfigModel()
            return self._model.model_dump()

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge override into base."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @property
    def model(self) -> ServerConfigModel:
        """Typed configuration; defaults when the file failed validation."""
        return self._model or ServerConfigModel()

    @property
    def host(self) -> str:
        """Bind host, AGENT_CONNECT_HOST wins over the file."""
        return os.getenv("AGENT_CONNECT_HOST") or self.model.web_server.host

    @property
    def port(self) -> int:
        """Bind port, AGENT_CONNECT_PORT wins over the file."""
        env_port = os.getenv("AGENT_CONNECT_PORT")
        if env_port:
            try:
                return int(env_port)
            except ValueError:
                logger.warning(f"Ignoring invalid AGENT_CONNECT_PORT: {env_port!r}")
        return self.model.web_server.port

    @property
    def server_url(self) -> str:
        """Base URL the CLI uses to reach the server."""
        host = self.host
        if host in ("0.0.0.0", "::"):
            host = "127.0.0.1"
        return f"http://{host}:{self.port}"

    def get(self, *keys, default=None) -> Any:
        """Get nested config value.

        Example: config.get("sessions", "scrollback_chunks")
        """
        if self._model:
            value = self._model
            for key in keys:
                if hasattr(value, key):
                    value = getattr(value, key)
                elif isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default
            if hasattr(value, "model_dump"):
                return value.model_dump()
            return value

        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value


# Singleton instance
_config: Optional[HostConfig] = None


def get_config() -> HostConfig:
    """Get the global server configuration."""
    global _config
    if _config is None:
        _config = HostConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None
