# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Shared fixtures and helpers for agent-connect tests.

Tests that spawn processes use /bin/sh as the agent command, so they run on
any POSIX host without the real agent installed.
"""

import asyncio
import time

import pytest

from agentconnect.host_config import reset_config
from agentconnect.models.config import AgentConfig
from agentconnect.utils.logging import reset_logging


class RecordingSink:
    """Async viewer sink that records every message it is sent."""

    def __init__(self, delay: float = 0.0, fail: bool = False):
        self.delay = delay
        self.fail = fail
        self.messages = []

    async def __call__(self, message):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("viewer went away")
        self.messages.append(message)

    def types(self):
        return [m["type"] for m in self.messages]

    def of_type(self, kind):
        return [m for m in self.messages if m["type"] == kind]

    def text(self):
        """Scrollback plus live output in arrival order."""
        return "".join(m["data"] for m in self.messages if m["type"] in ("scrollback", "output"))


class FakeProcess:
    """Stands in for PtyProcess where only input and resize matter."""

    def __init__(self):
        self.writes = []
        self.resizes = []
        self.alive = True

    async def write(self, data):
        if not self.alive:
            return False
        self.writes.append(data)
        return True

    def resize(self, cols, rows):
        if not self.alive:
            return False
        self.resizes.append((cols, rows))
        return True


async def wait_until(predicate, timeout=5.0, interval=0.01):
    """Poll ``predicate`` on the event loop until it holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError(f"Condition not met within {timeout}s")
        await asyncio.sleep(interval)


def poll_until(predicate, timeout=5.0, interval=0.05):
    """Blocking variant of wait_until for TestClient based tests."""
    deadline = time.monotonic() + timeout
    while True:
        result = predicate()
        if result:
            return result
        if time.monotonic() > deadline:
            raise AssertionError(f"Condition not met within {timeout}s")
        time.sleep(interval)


def shell_agent(script: str) -> AgentConfig:
    """Agent config that runs ``script`` through /bin/sh."""
    return AgentConfig(command="/bin/sh", args=["-c", script])


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep config, data and logs of every test inside tmp_path."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("AGENT_CONNECT_CONFIG", str(tmp_path / "config.yml"))
    monkeypatch.setenv("AGENT_CONNECT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("AGENT_CONNECT_LOG_FILE", str(tmp_path / "logs" / "agent-connect.log"))
    for var in (
        "AGENT_CONNECT_HOST",
        "AGENT_CONNECT_PORT",
        "AGENT_CONNECT_DEBUG",
        "AGENT_CONNECT_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)

    reset_config()
    reset_logging()
    yield
    reset_config()
    reset_logging()


@pytest.fixture
def project_dir(tmp_path):
    """An empty directory to run sessions in."""
    path = tmp_path / "project"
    path.mkdir()
    return path
