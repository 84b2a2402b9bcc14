"""Platform shell resolution."""

from __future__ import annotations

import logging
import platform

logger = logging.getLogger(__name__)

WINDOWS_SHELL: list[str] = ["cmd.exe", "/A/E:ON/F:ON/Q"]
POSIX_SHELL: list[str] = ["/bin/sh", "-i"]


def resolve_shell_command(
    configured: list[str] | None = None,
    system: str | None = None,
) -> list[str]:
    """Return the argument vector used to start the interactive shell.

    Args:
        configured: Explicit command from the settings. Wins when non-empty.
        system: Platform name as reported by ``platform.system()``.
            Detected when omitted.
    """
    if configured:
        return list(configured)
    system = system or platform.system()
    if system.lower().startswith("windows"):
        command = WINDOWS_SHELL
    else:
        command = POSIX_SHELL
    logger.debug("Using default shell for %s: %s", system, " ".join(command))
    return list(command)
