"""Server-side line editing for a character-at-a-time telnet peer.

The telnet client sends every key press as it happens and echoes nothing
itself, so the editor keeps the line buffer and cursor here and repaints
the peer's screen with small CSI edits (insert cell, delete cell, cursor
back) instead of redrawing the whole line.
"""

from __future__ import annotations

import logging
from collections import deque

from shellgate.terminal import keys
from shellgate.terminal.keys import Key, KeyEvent
from shellgate.terminal.port import TerminalPort

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 100


class History:
    """Previously submitted lines plus a navigation cursor.

    The cursor is ``None`` until UP is pressed. UP walks toward older
    entries and stops at the oldest, DOWN walks back toward the newest
    and stops there. Neither wraps.
    """

    def __init__(self, max_entries: int = DEFAULT_HISTORY_SIZE) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._entries: deque[str] = deque(maxlen=max_entries)
        self._selected: int | None = None

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def selected(self) -> int | None:
        return self._selected

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, line: str) -> None:
        """Record a submitted line and reset navigation to the newest end."""
        self._entries.append(line)
        self._selected = None

    def older(self) -> str | None:
        """Step toward older entries. Returns None when history is empty."""
        if not self._entries:
            return None
        if self._selected is None:
            self._selected = len(self._entries) - 1
        elif self._selected > 0:
            self._selected -= 1
        return self._entries[self._selected]

    def newer(self) -> str | None:
        """Step toward newer entries. Returns None when nothing is selected."""
        if self._selected is None:
            return None
        if self._selected < len(self._entries) - 1:
            self._selected += 1
        return self._entries[self._selected]


class LineEditor:
    """Applies key events to one editable input line.

    ``apply()`` returns the finished line when ENTER is pressed and None
    while the line is still being edited. The buffer invariant
    ``0 <= cursor <= len(buffer)`` holds after every call.

    Example::

        editor = LineEditor(terminal)
        line = await editor.apply(KeyEvent.printable(ord("l")))
        ...
        line = await editor.apply(keys.ENTER)  # -> "ls"
    """

    def __init__(
        self,
        terminal: TerminalPort,
        history: History | None = None,
        insert_mode: bool = True,
    ) -> None:
        self._terminal = terminal
        self._history = history if history is not None else History()
        self._buffer: list[str] = []
        self._cursor = 0
        self.insert_mode = insert_mode

    @property
    def buffer(self) -> str:
        return "".join(self._buffer)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def history(self) -> History:
        return self._history

    async def apply(self, event: KeyEvent) -> str | None:
        """Apply one key event, repainting the terminal as needed."""
        if event.is_printable:
            await self._type(event.char)
            return None

        handler = {
            Key.BACKSPACE: self._backspace,
            Key.DELETE: self._delete,
            Key.LEFT: self._left,
            Key.RIGHT: self._right,
            Key.UP: self._up,
            Key.DOWN: self._down,
        }.get(event.key)
        if handler is not None:
            await handler()
            return None
        if event.key is Key.ENTER:
            return await self._enter()

        logger.debug("Ignoring key %s", event)
        return None

    async def _type(self, char: str) -> None:
        encoded = char.encode("latin-1")
        if self._cursor == len(self._buffer):
            self._buffer.append(char)
            await self._terminal.write(encoded)
        elif self.insert_mode:
            self._buffer.insert(self._cursor, char)
            await self._terminal.write(keys.INSERT_CHAR + encoded)
        else:
            self._buffer[self._cursor] = char
            await self._terminal.write(encoded)
        self._cursor += 1

    async def _backspace(self) -> None:
        if self._cursor == 0:
            return
        self._cursor -= 1
        del self._buffer[self._cursor]
        await self._terminal.write(keys.CURSOR_BACK + keys.DELETE_CHAR)

    async def _delete(self) -> None:
        if self._cursor == len(self._buffer):
            return
        del self._buffer[self._cursor]
        await self._terminal.write(keys.DELETE_CHAR)

    async def _left(self) -> None:
        if self._cursor > 0:
            self._cursor -= 1
            await self._terminal.write(keys.CURSOR_BACK)

    async def _right(self) -> None:
        if self._cursor < len(self._buffer):
            self._cursor += 1
            await self._terminal.write(keys.CURSOR_FORWARD)

    async def _up(self) -> None:
        line = self._history.older()
        if line is not None:
            await self._replace_line(line)

    async def _down(self) -> None:
        line = self._history.newer()
        if line is not None:
            await self._replace_line(line)

    async def _replace_line(self, line: str) -> None:
        """Erase the displayed line and show ``line`` with the cursor at its end."""
        erase = b""
        if self._cursor > 0:
            erase += keys.cursor_back(self._cursor)
        if self._buffer:
            erase += keys.delete_chars(len(self._buffer))
        await self._terminal.write(erase + line.encode("latin-1", errors="replace"))
        self._buffer = list(line)
        self._cursor = len(self._buffer)

    async def _enter(self) -> str:
        line = self.buffer
        await self._terminal.write(keys.CRLF)
        self._history.append(line)
        self._buffer = []
        self._cursor = 0
        logger.debug("Line completed (%d chars)", len(line))
        return line
