# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pydantic models for server configuration (~/.agent-connect/config.yml)."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class WebServerConfig(BaseModel):
    """HTTP/WebSocket listener settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=3109, ge=1, le=65535)
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = "info"


class AgentConfig(BaseModel):
    """Command launched for every new session.

    The command is resolved against PATH at spawn time, so a missing
    executable surfaces as a SpawnError on session create.
    """

    command: str = "claude"
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)


class TerminalConfig(BaseModel):
    """Initial pseudo-terminal geometry."""

    cols: int = Field(default=120, ge=1)
    rows: int = Field(default=30, ge=1)
    term: str = "xterm-256color"


class SessionsConfig(BaseModel):
    """Scrollback, viewer backpressure and stopped-session retention."""

    scrollback_chunks: int = Field(default=5000, ge=1)
    viewer_queue_size: int = Field(default=1000, ge=1)
    viewer_send_timeout: float = Field(default=5.0, gt=0)
    stopped_ttl: Optional[float] = None  # seconds; None keeps stopped sessions forever
    reap_interval: float = Field(default=30.0, gt=0)

    @field_validator("stopped_ttl")
    @classmethod
    def _ttl_not_negative(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value < 0:
            raise ValueError("stopped_ttl must be >= 0 or null")
        return value


class ServerConfigModel(BaseModel):
    """Root of config.yml."""

    web_server: WebServerConfig = Field(default_factory=WebServerConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
