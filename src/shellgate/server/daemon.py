"""Telnet daemon accepting connections and running sessions.

The daemon is an ordinary object: construct it with settings, ``start()``
it, and ``stop()`` it. Whoever creates it owns it.
"""

from __future__ import annotations

import asyncio
import logging

import telnetlib3
from telnetlib3 import TelnetReader, TelnetWriter

from shellgate.config.settings import Settings
from shellgate.server.connection import TelnetConnection
from shellgate.server.session import Session
from shellgate.terminal.keys import CRLF
from shellgate.terminal.port import TerminalIOError

logger = logging.getLogger(__name__)


class TelnetDaemon:
    """Listens for telnet peers and gives each one a shell session.

    Usage::

        daemon = TelnetDaemon(settings)
        await daemon.start()
        ...
        await daemon.stop()
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._server: asyncio.AbstractServer | None = None
        self._sessions: dict[str, Session] = {}
        self._stopped = asyncio.Event()

    @property
    def is_serving(self) -> bool:
        return self._server is not None

    @property
    def sessions(self) -> dict[str, Session]:
        return dict(self._sessions)

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def is_allowed(self, host: str) -> bool:
        """Check ``host`` against the allow-list. An empty list allows all."""
        allowed = self._settings.server.allowed_hosts
        return not allowed or host in allowed

    async def start(self) -> None:
        """Bind the listening socket."""
        server = self._settings.server
        self._server = await telnetlib3.create_server(
            host=server.host,
            port=server.port,
            shell=self.handle_client,
            encoding=False,
            connect_maxwait=server.connect_maxwait,
            timeout=0,  # idle handling is done per session
        )
        self._stopped.clear()
        logger.info("Listening on %s:%d", server.host, server.port)

    async def stop(self) -> None:
        """Stop accepting connections and end every running session."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        for session in list(self._sessions.values()):
            await session.kill()
        self._stopped.set()
        logger.info("Daemon stopped")

    async def serve_forever(self) -> None:
        """Start (if needed) and block until ``stop()`` is called."""
        if self._server is None:
            await self.start()
        await self._stopped.wait()

    async def handle_client(self, reader: TelnetReader, writer: TelnetWriter) -> None:
        """telnetlib3 shell callback: one call per accepted connection."""
        connection = TelnetConnection(
            reader,
            writer,
            config=self._settings.session,
            encoding=self._settings.shell.encoding,
        )
        if not self.is_allowed(connection.host):
            logger.warning("Refused connection from %s (not in allowed hosts)", connection.host)
            await connection.close()
            return
        if len(self._sessions) >= self._settings.server.max_connections:
            logger.warning(
                "Refused connection from %s: %d sessions already running",
                connection.host, len(self._sessions),
            )
            try:
                await connection.terminal.write(b"Too many connections, try again later." + CRLF)
            except TerminalIOError:
                pass
            await connection.close()
            return

        session = Session(connection, self._settings)
        self._sessions[session.id] = session
        logger.info("Session %s opened for %s:%d", session.id, connection.host, connection.port)
        connection.start()
        try:
            await session.run()
        finally:
            self._sessions.pop(session.id, None)
            logger.info("Session %s finished (exit code %s)", session.id, session.exit_code)
