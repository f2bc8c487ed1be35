# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Session registry - the single source of truth for live and stopped sessions.

A session is one agent process on its own pty, plus the scrollback and hub
wired to it. Stopping a session never removes it: stopped sessions stay
queryable so their final output can still be viewed. Entries are dropped only
by cleanup_all() at shutdown, or by the reaper once ``stopped_ttl`` expires.
"""

import asyncio
import enum
import logging
import signal
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from agentconnect.core.errors import NotFoundError
from agentconnect.core.hub import EvictCallback, SessionHub, Sink, Viewer
from agentconnect.core.pty_process import PtyProcess
from agentconnect.core.scrollback import ScrollbackBuffer
from agentconnect.models.config import AgentConfig, SessionsConfig, TerminalConfig

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    """Lifecycle states. RUNNING -> STOPPED is the only transition."""

    RUNNING = "running"
    STOPPED = "stopped"


class SessionView(BaseModel):
    """Read-only metadata for API responses (camelCase on the wire)."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    project_id: str
    project_name: str
    project_path: str
    status: SessionStatus
    pid: Optional[int]
    started_at: datetime
    stopped_at: Optional[datetime] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """A registered session. Owns its process, scrollback and hub."""

    id: str
    project_id: str
    project_name: str
    project_path: str
    pid: Optional[int]
    process: PtyProcess
    scrollback: ScrollbackBuffer
    hub: SessionHub
    started_at: datetime = field(default_factory=_now)
    status: SessionStatus = SessionStatus.RUNNING
    stopped_at: Optional[datetime] = None
    _transition: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def mark_stopped(self) -> bool:
        """Move to STOPPED once. Returns True only for the first call."""
        with self._transition:
            if self.status == SessionStatus.STOPPED:
                return False
            self.status = SessionStatus.STOPPED
            self.stopped_at = _now()
        self.hub.mark_stopped()
        return True

    def view(self) -> SessionView:
        return SessionView(
            id=self.id,
            project_id=self.project_id,
            project_name=self.project_name,
            project_path=self.project_path,
            status=self.status,
            pid=self.pid,
            started_at=self.started_at,
            stopped_at=self.stopped_at,
        )


class SessionRegistry:
    """Creates, tracks and stops sessions.

    Instances are independent; the web app receives one at construction so
    tests can run several registries side by side.
    """

    def __init__(
        self,
        agent: Optional[AgentConfig] = None,
        terminal: Optional[TerminalConfig] = None,
        sessions: Optional[SessionsConfig] = None,
    ):
        self.agent = agent or AgentConfig()
        self.terminal = terminal or TerminalConfig()
        self.settings = sessions or SessionsConfig()
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._reaper_task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config) -> "SessionRegistry":
        """Build a registry from a HostConfig."""
        model = config.model
        return cls(agent=model.agent, terminal=model.terminal, sessions=model.sessions)

    async def create(self, project_id: str, project_name: str, project_path: str) -> SessionView:
        """Spawn the agent in ``project_path`` and register the session.

        Raises:
            SpawnError: the process could not be started; nothing is registered.
        """
        session_id = str(uuid.uuid4())
        process = PtyProcess(
            self.agent.command,
            self.agent.args,
            cwd=project_path,
            cols=self.terminal.cols,
            rows=self.terminal.rows,
            env=self.agent.env,
            term=self.terminal.term,
        )
        scrollback = ScrollbackBuffer(self.settings.scrollback_chunks)
        hub = SessionHub(
            session_id,
            process,
            scrollback,
            queue_size=self.settings.viewer_queue_size,
            send_timeout=self.settings.viewer_send_timeout,
        )
        process.set_on_output(hub.broadcast)
        process.set_on_exit(
            lambda code, sig: self._on_process_exit(session_id, hub, code, sig)
        )

        await process.start()

        # No await between start() and registration, so the exit callback
        # always finds the session
        session = Session(
            id=session_id,
            project_id=project_id,
            project_name=project_name,
            project_path=project_path,
            pid=process.pid,
            process=process,
            scrollback=scrollback,
            hub=hub,
        )
        with self._lock:
            self._sessions[session_id] = session

        logger.info(
            f"Created session {session_id} for project {project_name} "
            f"({project_path}) pid={process.pid}"
        )
        return session.view()

    def _on_process_exit(
        self, session_id: str, hub: SessionHub, exit_code: Optional[int], sig: Optional[str]
    ) -> None:
        session = self._get_session(session_id)
        if session is not None and session.mark_stopped():
            logger.info(f"Session {session_id} stopped: process exited (code={exit_code})")
        hub.on_exit(exit_code, sig)

    def _get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def _require(self, session_id: str) -> Session:
        session = self._get_session(session_id)
        if session is None:
            raise NotFoundError("session", session_id)
        return session

    def get(self, session_id: str) -> Optional[SessionView]:
        session = self._get_session(session_id)
        return session.view() if session else None

    def list(self, project_id: Optional[str] = None) -> List[SessionView]:
        """All sessions, optionally for one project. Order is not guaranteed."""
        with self._lock:
            sessions = list(self._sessions.values())
        return [s.view() for s in sessions if not project_id or s.project_id == project_id]

    def stop(self, session_id: str) -> SessionView:
        """Terminate a session's process and mark it stopped.

        Does not wait for the process to exit; the exit event follows
        asynchronously and is idempotent with this call.

        Raises:
            NotFoundError: unknown session id.
        """
        session = self._require(session_id)
        if session.status == SessionStatus.RUNNING:
            session.process.kill(signal.SIGTERM)
            if session.mark_stopped():
                logger.info(f"Session {session_id} stopped by request")
        return session.view()

    def hub(self, session_id: str) -> SessionHub:
        """The live hub for a session (used by the transport gateway)."""
        return self._require(session_id).hub

    def output(self, session_id: str, lines: int = 5) -> List[str]:
        """ANSI-stripped tail of a session's scrollback."""
        return self._require(session_id).scrollback.tail_lines(lines)

    def attach_viewer(
        self, session_id: str, sink: Sink, on_evict: Optional[EvictCallback] = None
    ) -> Viewer:
        """Attach a viewer to a session's hub.

        Raises:
            NotFoundError: unknown session id.
        """
        return self.hub(session_id).attach(sink, on_evict=on_evict)

    def detach_viewer(self, session_id: str, viewer: Viewer) -> None:
        """Detach a viewer. Unknown sessions and viewers are ignored."""
        session = self._get_session(session_id)
        if session is not None:
            session.hub.detach(viewer)
        else:
            viewer.close()

    async def send_input(self, session_id: str, data: str) -> bool:
        """Forward viewer keystrokes. False once the session is stopped or gone."""
        session = self._get_session(session_id)
        if session is None:
            return False
        return await session.hub.handle_input(data)

    def resize(self, session_id: str, cols: int, rows: int) -> bool:
        """Forward a viewer resize. False once the session has exited or is gone."""
        session = self._get_session(session_id)
        if session is None:
            return False
        return session.hub.handle_resize(cols, rows)

    def evict_stopped(self, now: Optional[datetime] = None) -> List[str]:
        """Drop sessions stopped for longer than ``stopped_ttl``.

        A process still alive at that point is killed with SIGKILL. Returns
        the evicted ids. Does nothing when no TTL is configured.
        """
        ttl = self.settings.stopped_ttl
        if ttl is None:
            return []
        now = now or _now()
        with self._lock:
            expired = [
                s
                for s in self._sessions.values()
                if s.status == SessionStatus.STOPPED
                and s.stopped_at is not None
                and (now - s.stopped_at).total_seconds() >= ttl
            ]
            for session in expired:
                del self._sessions[session.id]

        for session in expired:
            session.hub.close()
            # Ignored the stop signal; the pty and read loop go with the session
            if session.process.alive:
                logger.warning(
                    f"Session {session.id} (pid={session.pid}) outlived its stop, killing"
                )
                session.process.kill(signal.SIGKILL)
            logger.info(f"Evicted stopped session {session.id}")
        return [s.id for s in expired]

    async def _reap_loop(self) -> None:
        """Background task evicting expired stopped sessions."""
        while True:
            try:
                await asyncio.sleep(self.settings.reap_interval)
                self.evict_stopped()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in session reaper: {e}")

    def start_reaper(self) -> None:
        """Start the reaper if a TTL is configured and it is not running."""
        if self.settings.stopped_ttl is None:
            return
        if not self._reaper_task or self._reaper_task.done():
            self._reaper_task = asyncio.create_task(self._reap_loop())
            logger.info(
                f"Started session reaper (ttl={self.settings.stopped_ttl}s, "
                f"interval={self.settings.reap_interval}s)"
            )

    async def stop_reaper(self) -> None:
        if self._reaper_task and not self._reaper_task.done():
            self._reaper_task.cancel()
            try:
                await self._reaper_task
            except asyncio.CancelledError:
                pass
            logger.info("Stopped session reaper")
        self._reaper_task = None

    async def cleanup_all(self, timeout: float = 5.0) -> None:
        """Kill every running session and empty the registry.

        Waits up to ``timeout`` seconds for the processes to be reaped.
        Best effort: individual failures are logged, never raised.
        """
        await self.stop_reaper()
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            try:
                if session.status == SessionStatus.RUNNING:
                    session.process.kill(signal.SIGTERM)
                    session.mark_stopped()
                session.hub.close()
            except Exception as e:
                logger.warning(f"Error cleaning up session {session.id}: {e}")

        results = await asyncio.gather(
            *(s.process.wait(timeout=timeout) for s in sessions), return_exceptions=True
        )
        for session, result in zip(sessions, results):
            if isinstance(result, asyncio.TimeoutError):
                logger.warning(
                    f"Session {session.id} (pid={session.pid}) ignored SIGTERM, sending SIGKILL"
                )
                session.process.kill(signal.SIGKILL)
        logger.info(f"All sessions cleaned up ({len(sessions)})")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: Any) -> bool:
        with self._lock:
            return session_id in self._sessions
