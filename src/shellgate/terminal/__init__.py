"""Terminal module for shellgate.

Decodes raw bytes from the telnet peer into key events and provides the
TerminalPort capability surface used for all screen output.

Public API:
    Key, KeyEvent -- Key event vocabulary
    KeyDecoder -- Escape-sequence aware byte decoder
    TerminalPort -- Abstract terminal capability interface
    TelnetTerminal -- TerminalPort over telnetlib3 streams
"""

from shellgate.terminal.decoder import KeyDecoder
from shellgate.terminal.keys import Color, Key, KeyEvent
from shellgate.terminal.port import ConnectionClosedError, TerminalIOError, TerminalPort

__all__ = [
    "Color",
    "ConnectionClosedError",
    "Key",
    "KeyDecoder",
    "KeyEvent",
    "TelnetTerminal",
    "TerminalIOError",
    "TerminalPort",
]


def __getattr__(name: str) -> type:
    """Lazy import for the telnetlib3-backed implementation."""
    if name == "TelnetTerminal":
        from shellgate.terminal.telnet import TelnetTerminal
        return TelnetTerminal
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
