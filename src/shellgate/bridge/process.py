"""Shell process bridge.

Spawns the shell with piped standard streams, runs the three pumps
against the session's terminal and waits for the process to finish.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from shellgate.bridge.channel import SharedErrorChannel
from shellgate.bridge.pumps import (
    DEFAULT_READ_SIZE,
    ConnectionState,
    ErrorPump,
    InputPump,
    OutputPump,
)
from shellgate.editor.line_editor import DEFAULT_HISTORY_SIZE, History, LineEditor
from shellgate.terminal.port import TerminalPort

logger = logging.getLogger(__name__)

# Seconds the output pumps get to drain what the process wrote before exiting
DEFAULT_DRAIN_TIMEOUT = 1.0


class BridgeError(Exception):
    """Base class for process bridge failures."""


class ProcessSpawnError(BridgeError):
    """Raised when the shell executable cannot be started."""


class ExecutionInterruptedError(BridgeError):
    """Raised when waiting for the process was cancelled from outside."""


class ProcessBridge:
    """Owns one shell process and the pumps attached to it.

    Usage::

        bridge = ProcessBridge(connection, terminal, working_dir="/")
        exit_code = await bridge.run(["/bin/sh", "-i"])
    """

    def __init__(
        self,
        connection: ConnectionState,
        terminal: TerminalPort,
        working_dir: str | Path = "/",
        history_size: int = DEFAULT_HISTORY_SIZE,
        insert_mode: bool = True,
        read_size: int = DEFAULT_READ_SIZE,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
        env: dict[str, str] | None = None,
    ) -> None:
        self._connection = connection
        self._terminal = terminal
        self._working_dir = Path(working_dir)
        self._history = History(max_entries=history_size)
        self._insert_mode = insert_mode
        self._read_size = read_size
        self._drain_timeout = drain_timeout
        self._env = env or {}
        self._process: asyncio.subprocess.Process | None = None
        self._exit_status: int | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def exit_status(self) -> int | None:
        return self._exit_status

    @property
    def history(self) -> History:
        return self._history

    async def run(self, command: list[str]) -> int:
        """Run ``command`` until it exits and return its exit code.

        Raises:
            ProcessSpawnError: If the executable cannot be started.
            ExecutionInterruptedError: If the wait is cancelled. The
                process is killed before this is raised.
        """
        if not command:
            raise ProcessSpawnError("Empty shell command")
        command_line = " ".join(command)
        logger.info("Executing: %s (cwd=%s)", command_line, self._working_dir)

        try:
            self._process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self._working_dir.resolve()),
                env={**os.environ, **self._env},
            )
        except OSError as e:
            raise ProcessSpawnError(f"Cannot start {command_line}: {e}") from e

        process = self._process
        if process.stdin is None or process.stdout is None or process.stderr is None:
            self.destroy()
            raise ProcessSpawnError(f"{command_line} started without piped standard streams")
        logger.info("Shell started (pid=%d)", process.pid)

        channel = SharedErrorChannel(self._terminal)
        editor = LineEditor(self._terminal, self._history, insert_mode=self._insert_mode)
        stdout_pump = OutputPump(process.stdout, channel, self._connection, self._read_size)
        stderr_pump = ErrorPump(process.stderr, channel, self._connection, self._read_size)
        stdin_pump = InputPump(process.stdin, self._terminal, editor, self._connection)

        output_tasks = [
            asyncio.create_task(stdout_pump.run(), name=f"pump-{stdout_pump.name}"),
            asyncio.create_task(stderr_pump.run(), name=f"pump-{stderr_pump.name}"),
        ]
        input_task = asyncio.create_task(stdin_pump.run(), name=f"pump-{stdin_pump.name}")

        try:
            exit_code = await process.wait()
        except asyncio.CancelledError:
            logger.error("Execution interrupted. Called was: %s", command_line)
            self.destroy()
            raise ExecutionInterruptedError("Process execution interrupted") from None
        finally:
            await self._close_streams(output_tasks, input_task)
            self.destroy()
            await self._reap()

        self._exit_status = exit_code
        logger.info("Shell exited (pid=%d, code=%d)", process.pid, exit_code)
        return exit_code

    async def _close_streams(
        self,
        output_tasks: list[asyncio.Task[None]],
        input_task: asyncio.Task[None],
    ) -> None:
        """Stop all pumps. Each step is independent and best-effort."""
        process = self._process
        if process is not None and process.stdin is not None:
            try:
                process.stdin.close()
            except OSError:
                pass

        # Let stdout/stderr deliver their tail, then stop whatever still blocks
        _, still_running = await asyncio.wait(output_tasks, timeout=self._drain_timeout)
        for task in [*still_running, input_task]:
            task.cancel()
        results = await asyncio.gather(*output_tasks, input_task, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Pump ended with error: %s", result)

    async def _reap(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self._drain_timeout)
        except asyncio.TimeoutError:
            logger.warning("Shell did not exit after kill (pid=%d)", process.pid)

    def destroy(self) -> None:
        """Kill the process if it is still running."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
            logger.info("Killed shell (pid=%d)", process.pid)
        except ProcessLookupError:
            logger.debug("Shell already gone (pid=%d)", process.pid)
