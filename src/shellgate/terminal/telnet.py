"""TerminalPort implementation over telnetlib3 streams.

The telnet server runs in binary mode (``encoding=False``), so the reader
yields raw bytes with telnet commands already stripped and the writer
accepts raw bytes. Text written as ``str`` is encoded here.
"""

from __future__ import annotations

import logging
from typing import Callable

from telnetlib3 import TelnetReader, TelnetWriter

from shellgate.terminal.port import ConnectionClosedError, TerminalIOError, TerminalPort

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


class TelnetTerminal(TerminalPort):
    """Reads and writes the telnet peer's terminal.

    Usage::

        terminal = TelnetTerminal(reader, writer)
        await terminal.write("hello\\r\\n")
        byte = await terminal.read_byte()
    """

    def __init__(
        self,
        reader: TelnetReader,
        writer: TelnetWriter,
        encoding: str = DEFAULT_ENCODING,
        autoflush: bool = True,
        on_input: Callable[[], None] | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._encoding = encoding
        self._autoflush = autoflush
        self._on_input = on_input

    @property
    def encoding(self) -> str:
        return self._encoding

    @property
    def is_closing(self) -> bool:
        return self._writer.is_closing()

    async def read_byte(self) -> int:
        """Read a single byte from the peer."""
        try:
            data = await self._reader.read(1)
        except ConnectionError as e:
            raise ConnectionClosedError(f"Connection lost while reading: {e}") from e
        except OSError as e:
            raise TerminalIOError(f"Failed to read from terminal: {e}") from e
        if not data:
            raise ConnectionClosedError("Peer closed the connection")
        if self._on_input is not None:
            self._on_input()
        # telnetlib3 may hand back str if the server was not started in binary mode
        if isinstance(data, str):
            return ord(data[0])
        return data[0]

    async def write(self, data: str | bytes) -> None:
        """Write text or bytes, draining when autoflush is enabled."""
        if isinstance(data, str):
            data = data.encode(self._encoding, errors="replace")
        if self._writer.is_closing():
            raise ConnectionClosedError("Connection is closing")
        self._writer.write(data)
        if self._autoflush:
            await self.flush()

    async def flush(self) -> None:
        try:
            await self._writer.drain()
        except ConnectionError as e:
            raise ConnectionClosedError(f"Connection lost while writing: {e}") from e
        except OSError as e:
            raise TerminalIOError(f"Failed to write to terminal: {e}") from e

    async def close(self) -> None:
        if not self._writer.is_closing():
            try:
                self._writer.close()
            except OSError:
                pass
            logger.debug("Closed telnet writer")
