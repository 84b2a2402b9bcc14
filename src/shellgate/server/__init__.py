"""Telnet server module for shellgate.

Accepts telnet connections, binds each one to a shell session and
delivers connection lifecycle events (idle, timeout, logout, break).

Public API:
    TelnetDaemon -- Listener owning all sessions
    TelnetConnection -- One peer, its active flag and lifecycle events
    Session -- Connection + shell process
"""

from shellgate.server.connection import ConnectionEvent, TelnetConnection
from shellgate.server.daemon import TelnetDaemon
from shellgate.server.session import Session

__all__ = ["ConnectionEvent", "Session", "TelnetConnection", "TelnetDaemon", "create_app"]


def __getattr__(name: str) -> object:
    """Lazy import for the FastAPI admin app."""
    if name == "create_app":
        from shellgate.server.admin import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
