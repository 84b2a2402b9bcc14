"""Abstract capability surface for the remote terminal.

Everything in the line editor and the process bridge talks to the telnet
peer through this interface only, so the transport (telnetlib3 streams in
production, in-memory fakes in tests) can be swapped freely.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from shellgate.terminal import keys
from shellgate.terminal.keys import Color

logger = logging.getLogger(__name__)


class TerminalIOError(Exception):
    """Raised when reading from or writing to the terminal fails."""


class ConnectionClosedError(TerminalIOError):
    """Raised when the peer has gone away (EOF, reset, broken pipe)."""


class TerminalPort(ABC):
    """Byte-level read/write channel plus screen editing helpers.

    Only ``read_byte``, ``write`` and ``flush`` are transport specific.
    The attribute and cursor helpers are expressed as ANSI sequences on
    top of ``write``.

    Writes are atomic per call: concurrent writers never see their bytes
    split by another caller's bytes.
    """

    @abstractmethod
    async def read_byte(self) -> int:
        """Read one raw byte from the peer.

        Raises:
            ConnectionClosedError: If the peer closed the connection.
            TerminalIOError: For any other read failure.
        """
        ...

    @abstractmethod
    async def write(self, data: str | bytes) -> None:
        """Write raw text or bytes to the peer."""
        ...

    @abstractmethod
    async def flush(self) -> None:
        """Wait until written data has been handed to the transport."""
        ...

    async def close(self) -> None:
        """Close the underlying channel. Default is a no-op."""

    async def set_bold(self, enabled: bool) -> None:
        await self.write(keys.sgr(1 if enabled else 22))

    async def set_italic(self, enabled: bool) -> None:
        await self.write(keys.sgr(3 if enabled else 23))

    async def set_foreground(self, color: Color) -> None:
        await self.write(keys.foreground(color))

    async def reset_attributes(self) -> None:
        await self.write(keys.RESET_ATTRIBUTES)

    async def move_left(self, times: int = 1) -> None:
        if times > 0:
            await self.write(keys.cursor_back(times))

    async def move_right(self, times: int = 1) -> None:
        if times > 0:
            await self.write(keys.cursor_forward(times))

    async def store_cursor(self) -> None:
        await self.write(keys.SAVE_CURSOR)

    async def restore_cursor(self) -> None:
        await self.write(keys.RESTORE_CURSOR)

    async def erase_screen(self) -> None:
        await self.write(keys.ERASE_SCREEN)

    async def erase_to_end_of_line(self) -> None:
        await self.write(keys.ERASE_TO_END_OF_LINE)

    async def home_cursor(self) -> None:
        await self.write(keys.HOME_CURSOR)

    async def bell(self) -> None:
        await self.write(keys.BELL)

    async def write_styled(
        self,
        data: str | bytes,
        color: Color,
        bold: bool = False,
        italic: bool = False,
    ) -> None:
        """Write ``data`` in the given style, then reset all attributes."""
        prefix = keys.foreground(color)
        if bold:
            prefix += keys.sgr(1)
        if italic:
            prefix += keys.sgr(3)
        if isinstance(data, str):
            data = data.encode(self.encoding, errors="replace")
        # One write so the styled run reaches the wire in one piece
        await self.write(prefix + data + keys.RESET_ATTRIBUTES)

    @property
    def encoding(self) -> str:
        return "utf-8"


def to_crlf(data: bytes) -> bytes:
    """Normalize bare LF line endings to CRLF for the telnet NVT."""
    return data.replace(b"\r\n", b"\n").replace(b"\n", keys.CRLF)
