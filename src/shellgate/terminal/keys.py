"""Key event vocabulary and terminal control byte tables.

Incoming bytes from the telnet peer are decoded into ``KeyEvent`` values:
either a literal character (code point below 256) or one of the named
keys below.

Outgoing screen edits are fixed ANSI CSI sequences:

    ESC [ 1 P   delete one character at the cursor
    ESC [ 1 @   insert one blank cell at the cursor
    ESC [ 1 D   move the cursor back one cell
    ESC [ s     save the cursor position
    ESC [ u     restore the cursor position
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Control bytes (as received from the wire)
# ---------------------------------------------------------------------------

NUL: int = 0x00
EOT: int = 0x04  # Ctrl+D, logout request
BEL: int = 0x07
BS: int = 0x08
HT: int = 0x09
LF: int = 0x0A
CR: int = 0x0D
ESC: int = 0x1B
LSB: int = 0x5B  # '['
SEMICOLON: int = 0x3B  # CSI parameter separator
TILDE: int = 0x7E
DEL: int = 0x7F

# Code points at or above this are never literal characters
CHAR_LIMIT: int = 256

# Upper bound on an escape sequence repeat count
MAX_REPEAT: int = 1024


class Key(str, enum.Enum):
    """Kind of a decoded key event."""

    CHAR = "char"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ENTER = "enter"
    BACKSPACE = "backspace"
    DELETE = "delete"
    TAB = "tab"
    LOGOUT_REQUEST = "logout_request"
    UNRECOGNIZED = "unrecognized"
    HANDLED = "handled"  # Already consumed upstream, nothing to edit


class KeyEvent(BaseModel):
    """A single normalized key press."""

    model_config = ConfigDict(frozen=True)

    key: Key = Field(description="Named key, or CHAR for a literal character")
    char: str = Field(default="", max_length=1, description="The character when key is CHAR")

    @classmethod
    def printable(cls, code: int) -> KeyEvent:
        if not 0 <= code < CHAR_LIMIT:
            raise ValueError(f"Code point {code} is not a literal key")
        return cls(key=Key.CHAR, char=chr(code))

    @classmethod
    def named(cls, key: Key) -> KeyEvent:
        return _NAMED[key]

    @property
    def is_printable(self) -> bool:
        return self.key is Key.CHAR

    def __str__(self) -> str:
        if self.is_printable:
            return repr(self.char)
        return self.key.name


_NAMED: dict[Key, KeyEvent] = {key: KeyEvent(key=key) for key in Key if key is not Key.CHAR}

UP = _NAMED[Key.UP]
DOWN = _NAMED[Key.DOWN]
LEFT = _NAMED[Key.LEFT]
RIGHT = _NAMED[Key.RIGHT]
ENTER = _NAMED[Key.ENTER]
BACKSPACE = _NAMED[Key.BACKSPACE]
DELETE = _NAMED[Key.DELETE]
TAB = _NAMED[Key.TAB]
LOGOUT_REQUEST = _NAMED[Key.LOGOUT_REQUEST]
UNRECOGNIZED = _NAMED[Key.UNRECOGNIZED]
HANDLED = _NAMED[Key.HANDLED]

# ---------------------------------------------------------------------------
# Single control bytes -> key events (NORMAL state of the decoder)
# ---------------------------------------------------------------------------

CONTROL_KEYS: dict[int, KeyEvent] = {
    CR: ENTER,
    LF: ENTER,
    BS: BACKSPACE,
    DEL: BACKSPACE,
    HT: TAB,
}

# ---------------------------------------------------------------------------
# CSI final byte -> key event. Repeat counts apply to all of these.
# ---------------------------------------------------------------------------

CSI_FINAL_KEYS: dict[int, KeyEvent] = {
    ord("A"): UP,
    ord("B"): DOWN,
    ord("C"): RIGHT,
    ord("D"): LEFT,
    ord("P"): DELETE,
}

# ESC [ <n> ~ keypad variants, keyed by n
CSI_TILDE_KEYS: dict[int, KeyEvent] = {
    3: DELETE,
}

# ---------------------------------------------------------------------------
# Outgoing sequences
# ---------------------------------------------------------------------------

CSI: bytes = bytes([ESC, LSB])

DELETE_CHAR: bytes = CSI + b"1P"
INSERT_CHAR: bytes = CSI + b"1@"
CURSOR_BACK: bytes = CSI + b"1D"
CURSOR_FORWARD: bytes = CSI + b"1C"
SAVE_CURSOR: bytes = CSI + b"s"
RESTORE_CURSOR: bytes = CSI + b"u"

ERASE_SCREEN: bytes = CSI + b"2J"
ERASE_TO_END_OF_LINE: bytes = CSI + b"K"
HOME_CURSOR: bytes = CSI + b"H"
RESET_ATTRIBUTES: bytes = CSI + b"0m"
BELL: bytes = bytes([BEL])
CRLF: bytes = b"\r\n"


class Color(enum.IntEnum):
    """ANSI foreground colours (SGR 30-37)."""

    BLACK = 0
    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    WHITE = 7


def delete_chars(count: int) -> bytes:
    """ESC [ <count> P -- delete ``count`` cells at the cursor."""
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")
    return CSI + f"{count}P".encode("ascii")


def cursor_back(count: int) -> bytes:
    """ESC [ <count> D -- move the cursor ``count`` cells left."""
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")
    return CSI + f"{count}D".encode("ascii")


def cursor_forward(count: int) -> bytes:
    """ESC [ <count> C -- move the cursor ``count`` cells right."""
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")
    return CSI + f"{count}C".encode("ascii")


def sgr(*params: int) -> bytes:
    """Select Graphic Rendition with the given numeric parameters."""
    return CSI + ";".join(str(p) for p in params).encode("ascii") + b"m"


def foreground(color: Color) -> bytes:
    return sgr(30 + int(color))
