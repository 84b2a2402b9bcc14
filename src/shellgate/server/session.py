"""A telnet session: one connection bound to one shell process."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime

from shellgate.bridge.process import (
    ExecutionInterruptedError,
    ProcessBridge,
    ProcessSpawnError,
)
from shellgate.bridge.shell import resolve_shell_command
from shellgate.config.settings import Settings
from shellgate.server.connection import TelnetConnection
from shellgate.terminal.keys import CRLF, Color
from shellgate.terminal.port import TerminalIOError

logger = logging.getLogger(__name__)


class Session:
    """Runs the shell for one accepted connection.

    The session greets the peer, starts a ``ProcessBridge`` and ends when
    the shell exits, the peer disconnects, or a timeout or logout event
    arrives. It also acts as the connection's lifecycle listener.
    """

    def __init__(self, connection: TelnetConnection, settings: Settings) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.started_at = datetime.now()
        self.exit_code: int | None = None
        self._connection = connection
        self._settings = settings
        self._terminal = connection.terminal
        shell = settings.shell
        self._bridge = ProcessBridge(
            connection,
            self._terminal,
            working_dir=shell.working_dir,
            history_size=settings.editor.history_size,
            insert_mode=settings.editor.insert_mode,
            read_size=shell.read_size,
            drain_timeout=shell.drain_timeout,
            env=shell.env,
        )
        self._bridge_task: asyncio.Task[int] | None = None
        self._interrupted = False
        self._bridge_cancelled = False
        connection.add_listener(self)

    @property
    def connection(self) -> TelnetConnection:
        return self._connection

    @property
    def bridge(self) -> ProcessBridge:
        return self._bridge

    async def run(self) -> int | None:
        """Serve the session until it ends. Returns the shell's exit code, if any."""
        try:
            if self._settings.session.show_banner:
                await self.write_banner()
            if not self._connection.is_active:
                raise ExecutionInterruptedError("Connection closed before the shell started")
            command = resolve_shell_command(self._settings.shell.command)
            self._bridge_task = asyncio.create_task(
                self._bridge.run(command), name=f"bridge-{self.id}",
            )
            closed = asyncio.create_task(self._connection.wait_closed())
            try:
                await asyncio.wait(
                    {self._bridge_task, closed}, return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                closed.cancel()
            self._cancel_bridge()
            try:
                self.exit_code = await self._bridge_task
            except asyncio.CancelledError:
                # Cancelled before the bridge was waiting on the process
                if not self._interrupted:
                    raise
                raise ExecutionInterruptedError("Session ended before the shell started") from None
            logger.info("Session %s: shell exited with code %d", self.id, self.exit_code)
        except ProcessSpawnError as e:
            logger.error("Session %s: %s", self.id, e)
            await self._say_quietly("Could not start shell", Color.RED, bold=True)
        except ExecutionInterruptedError:
            logger.info("Session %s: shell interrupted", self.id)
        except asyncio.CancelledError:
            logger.info("Session %s cancelled", self.id)
            raise
        except Exception:
            logger.exception("Session %s failed", self.id)
        finally:
            self._bridge.destroy()
            await self._connection.close()
        return self.exit_code

    async def write_banner(self) -> None:
        terminal = self._terminal
        await terminal.erase_screen()
        await terminal.home_cursor()
        await terminal.write_styled(self._settings.session.title, Color.RED, bold=True)
        await terminal.write(CRLF + CRLF)
        host, port = self._connection.host, self._connection.port
        logger.info("Session %s: welcome %s:%d", self.id, host, port)
        welcome = f"Welcome {host} [{host}:{port}]"
        await terminal.write_styled(welcome, Color.GREEN)
        await terminal.write(CRLF + CRLF)
        await terminal.flush()

    async def kill(self) -> None:
        """End the session from outside (admin request)."""
        logger.info("Session %s killed", self.id)
        await self._say_quietly("Session terminated by administrator", Color.RED, bold=True)
        await self._interrupt()

    # -- ConnectionListener ----------------------------------------------

    async def connection_idle(self) -> None:
        await self._say_quietly("CONNECTION IDLE (ignored)", Color.YELLOW)

    async def connection_timed_out(self) -> None:
        await self._say_quietly("CONNECTION TIMEDOUT", Color.RED, bold=True, farewell=True)
        await self._interrupt()

    async def connection_logout_request(self) -> None:
        await self._say_quietly("CONNECTION LOGOUTREQUEST", Color.GREEN, farewell=True)
        await self._interrupt()

    async def connection_sent_break(self) -> None:
        await self._say_quietly("CONNECTION BREAK (ignored)", Color.YELLOW)

    # --------------------------------------------------------------------

    async def _interrupt(self) -> None:
        self._interrupted = True
        self._cancel_bridge()
        await self._connection.close()

    def _cancel_bridge(self) -> None:
        # At most one cancel per run so the bridge always reaches its cleanup
        task = self._bridge_task
        if task is None or task.done() or self._bridge_cancelled:
            return
        self._interrupted = True
        self._bridge_cancelled = True
        task.cancel()

    async def _say_quietly(
        self,
        message: str,
        color: Color,
        bold: bool = False,
        farewell: bool = False,
    ) -> None:
        """Write a styled status line; a dead connection is not an error here."""
        text = CRLF + message.encode(self._terminal.encoding) + CRLF
        if farewell:
            text += b"Bye bye" + CRLF
        try:
            await self._terminal.write_styled(text, color, bold=bold)
        except TerminalIOError as e:
            logger.debug("Session %s: could not write %r: %s", self.id, message, e)
