"""One telnet connection and its lifecycle events.

Wraps the telnetlib3 reader/writer pair, keeps the active flag the pumps
poll, and turns idle time, telnet BREAK and logout requests into events
for registered listeners.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Protocol

from telnetlib3 import TelnetReader, TelnetWriter
from telnetlib3.telopt import BRK

from shellgate.config.settings import SessionConfig
from shellgate.terminal.telnet import DEFAULT_ENCODING, TelnetTerminal

logger = logging.getLogger(__name__)


class ConnectionEvent(str, enum.Enum):
    """Lifecycle notifications delivered to connection listeners."""

    IDLE = "idle"
    TIMED_OUT = "timed_out"
    LOGOUT_REQUEST = "logout_request"
    SENT_BREAK = "sent_break"


class ConnectionListener(Protocol):
    async def connection_idle(self) -> None: ...

    async def connection_timed_out(self) -> None: ...

    async def connection_logout_request(self) -> None: ...

    async def connection_sent_break(self) -> None: ...


_HANDLERS: dict[ConnectionEvent, str] = {
    ConnectionEvent.IDLE: "connection_idle",
    ConnectionEvent.TIMED_OUT: "connection_timed_out",
    ConnectionEvent.LOGOUT_REQUEST: "connection_logout_request",
    ConnectionEvent.SENT_BREAK: "connection_sent_break",
}


class TelnetConnection:
    """A live telnet peer.

    Call ``start()`` once the connection is accepted to begin idle
    tracking, and ``close()`` when the session is over.
    """

    def __init__(
        self,
        reader: TelnetReader,
        writer: TelnetWriter,
        config: SessionConfig | None = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        self._writer = writer
        self._config = config or SessionConfig()
        self._listeners: list[ConnectionListener] = []
        self._active = True
        self._closed = asyncio.Event()
        self._input_seen = asyncio.Event()
        self._watchdog: asyncio.Task[None] | None = None
        self._event_tasks: set[asyncio.Task[None]] = set()
        self.terminal = TelnetTerminal(reader, writer, encoding=encoding, on_input=self._touch)

        peer = writer.get_extra_info("peername") or ("unknown", 0)
        self.host: str = str(peer[0])
        self.port: int = int(peer[1])

    @property
    def is_active(self) -> bool:
        return self._active

    def add_listener(self, listener: ConnectionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ConnectionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start(self) -> None:
        """Start idle tracking and hook telnet BREAK."""
        try:
            self._writer.set_iac_callback(BRK, self._on_break)
        except (AttributeError, ValueError) as e:
            logger.debug("BREAK callback not installed: %s", e)
        if self._config.time_to_warning > 0:
            self._watchdog = asyncio.create_task(self._watch_idle(), name=f"idle-{self.host}")

    def request_logout(self) -> None:
        """Called when the peer asks to log out (Ctrl+D)."""
        self.fire(ConnectionEvent.LOGOUT_REQUEST)

    def fire(self, event: ConnectionEvent) -> None:
        """Deliver ``event`` to every listener without blocking the caller."""
        if not self._active:
            return
        logger.debug("Connection %s:%d event %s", self.host, self.port, event.value)
        for listener in list(self._listeners):
            handler = getattr(listener, _HANDLERS[event])
            task = asyncio.get_running_loop().create_task(self._deliver(event, handler()))
            self._event_tasks.add(task)
            task.add_done_callback(self._event_tasks.discard)

    async def _deliver(self, event: ConnectionEvent, coro) -> None:
        try:
            await coro
        except Exception:
            logger.exception("Listener failed handling %s", event.value)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def close(self) -> None:
        """Deactivate the connection and close the telnet stream. Idempotent."""
        if not self._active:
            return
        self._active = False
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None
        await self.terminal.close()
        self._closed.set()
        logger.info("Connection %s:%d closed", self.host, self.port)

    def _touch(self) -> None:
        self._input_seen.set()

    def _on_break(self, cmd: bytes) -> None:
        self.fire(ConnectionEvent.SENT_BREAK)

    async def _watch_idle(self) -> None:
        warning = self._config.time_to_warning
        timeout = self._config.time_to_timeout
        while self._active:
            self._input_seen.clear()
            if await self._input_within(warning):
                continue
            self.fire(ConnectionEvent.IDLE)
            if timeout <= 0:
                await self._input_seen.wait()
                continue
            if await self._input_within(timeout):
                continue
            self.fire(ConnectionEvent.TIMED_OUT)
            return

    async def _input_within(self, seconds: float) -> bool:
        try:
            await asyncio.wait_for(self._input_seen.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False
