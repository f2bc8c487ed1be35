# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""FastAPI server for agent-connect.

Thin HTTP surface over the session registry plus the WebSocket gateway that
attaches browser terminals to session hubs. TLS is expected to be terminated
by a reverse proxy (e.g. Tailscale Serve).
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from agentconnect import __version__
from agentconnect.core.errors import NotFoundError, SpawnError
from agentconnect.core.projects import ProjectStore
from agentconnect.core.sessions import SessionRegistry, SessionView
from agentconnect.host_config import HostConfig, get_config
from agentconnect.web.protocol import InputFrame, ResizeFrame, decode_frame

logger = logging.getLogger(__name__)

# Close codes for the terminal WebSocket
WS_SESSION_NOT_FOUND = 4404
WS_TRY_AGAIN_LATER = 1013


class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId", min_length=1)


def _dump(view: SessionView) -> Dict:
    return view.model_dump(mode="json", by_alias=True)


def create_app(
    registry: Optional[SessionRegistry] = None,
    projects: Optional[ProjectStore] = None,
    config: Optional[HostConfig] = None,
) -> FastAPI:
    """Build the app around an explicit registry and project store."""
    if registry is None:
        registry = SessionRegistry.from_config(config or get_config())
    if projects is None:
        projects = ProjectStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the stopped-session reaper; kill every session on shutdown."""
        registry.start_reaper()
        yield
        await registry.cleanup_all()

    app = FastAPI(title="agent-connect", version=__version__, lifespan=lifespan)
    app.state.registry = registry
    app.state.projects = projects

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "sessions": len(registry)}

    @app.get("/api/projects")
    async def list_projects() -> Dict[str, List[Dict]]:
        return {
            "projects": [p.model_dump(mode="json", by_alias=True) for p in projects.list_projects()]
        }

    @app.get("/api/sessions")
    async def list_sessions(project_id: Optional[str] = Query(default=None, alias="projectId")):
        """All sessions (optionally for one project), oldest first."""
        views = sorted(registry.list(project_id), key=lambda v: v.started_at)
        return {"sessions": [_dump(v) for v in views]}

    @app.post("/api/sessions", status_code=201)
    async def create_session(request: CreateSessionRequest):
        """Launch the agent in a project's directory."""
        try:
            project = projects.resolve(request.project_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

        try:
            view = await registry.create(project.id, project.name, project.path)
        except SpawnError as e:
            logger.error(f"Failed to create session for {project.name}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return _dump(view)

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str):
        view = registry.get(session_id)
        if view is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return _dump(view)

    @app.delete("/api/sessions/{session_id}")
    async def stop_session(session_id: str):
        """Stop a session; it stays listed as stopped."""
        try:
            return _dump(registry.stop(session_id))
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Session not found")

    @app.get("/api/sessions/{session_id}/output")
    async def session_output(session_id: str, lines: int = Query(default=5, ge=1, le=1000)):
        """Plain-text tail of a session's output, for previews."""
        view = registry.get(session_id)
        if view is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return {
            "id": session_id,
            "status": view.status.value,
            "lines": registry.output(session_id, lines),
        }

    @app.websocket("/ws/sessions/{session_id}")
    async def session_websocket(websocket: WebSocket, session_id: str):
        """Terminal I/O for one viewer of a session.

        Output arrives as scrollback, then live chunks, then exit. Input and
        resize frames from the client are forwarded to the session's pty.
        """
        client_id = uuid.uuid4().hex[:8]
        await websocket.accept()

        async def close_slow_viewer():
            await websocket.close(code=WS_TRY_AGAIN_LATER, reason="Viewer too slow")

        try:
            viewer = registry.attach_viewer(
                session_id, websocket.send_json, on_evict=close_slow_viewer
            )
        except NotFoundError:
            logger.info(f"WebSocket [{client_id}] rejected: unknown session {session_id}")
            await websocket.close(code=WS_SESSION_NOT_FOUND, reason="Session not found")
            return
        logger.info(f"WebSocket connected [{client_id}] viewer={viewer.id} session={session_id}")

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None:
                    continue

                frame = decode_frame(text)
                if isinstance(frame, InputFrame):
                    await registry.send_input(session_id, frame.data)
                elif isinstance(frame, ResizeFrame):
                    registry.resize(session_id, frame.cols, frame.rows)

        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.exception(f"WebSocket error [{client_id}]: {e}")
        finally:
            registry.detach_viewer(session_id, viewer)
            logger.info(f"WebSocket disconnected [{client_id}] session={session_id}")

    return app


def run_server(host: str, port: int, log_level: str = "info") -> None:
    """Serve the app with uvicorn until interrupted."""
    import uvicorn

    app = create_app()
    logger.info(f"Starting agent-connect on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=log_level)
