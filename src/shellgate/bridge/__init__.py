"""Process bridge module for shellgate.

Spawns the local shell and connects its standard streams to the remote
terminal through three concurrent pumps.

Public API:
    ProcessBridge -- Runs one shell process for a session
    SharedErrorChannel -- stdout/stderr hand-off protocol
    OutputPump, ErrorPump, InputPump -- Stream pump tasks
    resolve_shell_command -- Platform default shell invocation
"""

from shellgate.bridge.channel import SharedErrorChannel
from shellgate.bridge.process import (
    BridgeError,
    ExecutionInterruptedError,
    ProcessBridge,
    ProcessSpawnError,
)
from shellgate.bridge.pumps import ErrorPump, InputPump, OutputPump
from shellgate.bridge.shell import resolve_shell_command

__all__ = [
    "BridgeError",
    "ErrorPump",
    "ExecutionInterruptedError",
    "InputPump",
    "OutputPump",
    "ProcessBridge",
    "ProcessSpawnError",
    "SharedErrorChannel",
    "resolve_shell_command",
]
