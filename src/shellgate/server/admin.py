"""FastAPI admin server for a running telnet daemon.

Exposes read-only status plus the ability to end a session:

    GET    /health                -> {"status": "ok", ...}
    GET    /sessions              -> [SessionInfo, ...]
    DELETE /sessions/{session_id} -> {"status": "killed", "id": ...}
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from shellgate.server.daemon import TelnetDaemon
from shellgate.server.session import Session

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str = "ok"
    serving: bool = False
    active_sessions: int = 0


class SessionInfo(BaseModel):
    id: str = Field(description="Session identifier")
    host: str = Field(description="Peer address")
    port: int = Field(description="Peer port")
    started_at: datetime
    pid: int | None = Field(default=None, description="Shell process id, once started")
    running: bool = Field(description="Whether the shell process is still running")
    history_length: int = Field(default=0, description="Lines submitted so far")

    @classmethod
    def from_session(cls, session: Session) -> SessionInfo:
        connection = session.connection
        bridge = session.bridge
        return cls(
            id=session.id,
            host=connection.host,
            port=connection.port,
            started_at=session.started_at,
            pid=bridge.pid,
            running=bridge.is_running,
            history_length=len(bridge.history),
        )


def create_app(daemon: TelnetDaemon) -> FastAPI:
    """Create the admin application for ``daemon``."""
    app = FastAPI(
        title="shellgate admin",
        description="Status and session control for the shellgate telnet daemon",
        version="0.1.0",
    )
    app.state.daemon = daemon

    @app.get("/health")
    async def health_check() -> HealthResponse:
        d: TelnetDaemon = app.state.daemon
        return HealthResponse(
            status="ok",
            serving=d.is_serving,
            active_sessions=len(d.sessions),
        )

    @app.get("/sessions")
    async def list_sessions() -> list[SessionInfo]:
        d: TelnetDaemon = app.state.daemon
        return [SessionInfo.from_session(s) for s in d.sessions.values()]

    @app.delete("/sessions/{session_id}")
    async def kill_session(session_id: str) -> dict[str, str]:
        d: TelnetDaemon = app.state.daemon
        session = d.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
        await session.kill()
        logger.info("Session %s killed via admin API", session_id)
        return {"status": "killed", "id": session_id}

    return app
