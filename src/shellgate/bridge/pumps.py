"""Pump tasks moving bytes between the shell process and the terminal.

Three pumps run concurrently for every session:

* ``OutputPump``  process stdout -> terminal
* ``ErrorPump``   process stderr -> terminal (bold red, has priority)
* ``InputPump``   terminal keys -> line editor -> process stdin

A pump ends on end-of-stream, when the connection stops being active, or
on an I/O failure of its own stream. A pump ending never stops its
siblings; the bridge decides when the whole session is over.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from shellgate.bridge.channel import SharedErrorChannel
from shellgate.editor.line_editor import LineEditor
from shellgate.terminal.decoder import KeyDecoder
from shellgate.terminal.keys import Key
from shellgate.terminal.port import (
    ConnectionClosedError,
    TerminalIOError,
    TerminalPort,
    to_crlf,
)

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 4096


class ConnectionState(Protocol):
    """The part of the telnet connection the pumps depend on."""

    @property
    def is_active(self) -> bool: ...

    def request_logout(self) -> None: ...


class OutputPump:
    """Drains process stdout to the terminal, yielding to pending stderr."""

    name = "stdout"

    def __init__(
        self,
        stream: asyncio.StreamReader,
        channel: SharedErrorChannel,
        connection: ConnectionState,
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._stream = stream
        self._channel = channel
        self._connection = connection
        self._read_size = read_size

    async def run(self) -> None:
        try:
            while self._connection.is_active:
                batch = await self._stream.read(self._read_size)
                if not batch:
                    logger.debug("%s reached end of stream", self.name)
                    break
                logger.debug("%s> %r", self.name.upper(), batch)
                await self._channel.flush_output(to_crlf(batch))
        except ConnectionClosedError:
            logger.debug("%s pump: connection closed", self.name)
        except (TerminalIOError, OSError) as e:
            logger.warning("%s pump failed: %s", self.name, e)


class ErrorPump:
    """Drains process stderr to the terminal through the shared channel."""

    name = "stderr"

    def __init__(
        self,
        stream: asyncio.StreamReader,
        channel: SharedErrorChannel,
        connection: ConnectionState,
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._stream = stream
        self._channel = channel
        self._connection = connection
        self._read_size = read_size

    async def run(self) -> None:
        try:
            while self._connection.is_active:
                batch = await self._stream.read(self._read_size)
                if not batch:
                    logger.debug("%s reached end of stream", self.name)
                    break
                logger.debug("%s> %r", self.name.upper(), batch)
                self._channel.stage_error(to_crlf(batch))
                await self._channel.flush_error()
        except ConnectionClosedError:
            logger.debug("%s pump: connection closed", self.name)
        except (TerminalIOError, OSError) as e:
            logger.warning("%s pump failed: %s", self.name, e)


class InputPump:
    """Reads key events, edits the line and sends finished lines to stdin.

    Lines are forwarded as the raw buffer text followed by ``\\n``. The
    buffer holds code points below 256, so ``latin-1`` gives back exactly
    the bytes the peer typed.

    A logout request from the peer is passed on to the connection and
    ends the pump.
    """

    name = "stdin"

    def __init__(
        self,
        stream: asyncio.StreamWriter,
        terminal: TerminalPort,
        editor: LineEditor,
        connection: ConnectionState,
        line_ending: bytes = b"\n",
    ) -> None:
        self._stream = stream
        self._terminal = terminal
        self._editor = editor
        self._connection = connection
        self._line_ending = line_ending
        self._logout_requested = False
        self._decoder = KeyDecoder(terminal, on_logout=self._request_logout)

    @property
    def decoder(self) -> KeyDecoder:
        return self._decoder

    @property
    def logout_requested(self) -> bool:
        return self._logout_requested

    def _request_logout(self) -> None:
        self._logout_requested = True
        self._connection.request_logout()

    async def run(self) -> None:
        try:
            while self._connection.is_active:
                event = await self._decoder.next()
                logger.debug("%s> %s", self.name.upper(), event)
                if event.key is Key.HANDLED:
                    if self._logout_requested:
                        break
                    continue
                if event.key is Key.UNRECOGNIZED:
                    await self._terminal.bell()
                    continue
                line = await self._editor.apply(event)
                if line is not None:
                    await self._send(line)
        except ConnectionClosedError:
            logger.debug("%s pump: connection closed", self.name)
        except (TerminalIOError, OSError) as e:
            logger.warning("%s pump failed: %s", self.name, e)

    async def _send(self, line: str) -> None:
        self._stream.write(line.encode("latin-1", errors="replace") + self._line_ending)
        await self._stream.drain()
