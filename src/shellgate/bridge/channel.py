"""Hand-off between the stdout and stderr pumps.

Both pumps write to the same terminal. Error output has priority: while
stderr text is staged or being written, stdout waits. The wait condition
is level-triggered (``pending`` is checked under the lock), so a flush
that completes before stdout starts waiting cannot be missed.
"""

from __future__ import annotations

import asyncio
import logging

from shellgate.terminal.keys import Color
from shellgate.terminal.port import TerminalPort

logger = logging.getLogger(__name__)


class SharedErrorChannel:
    """Shared stderr buffer and the exclusion protocol around it.

    Only one of the two pumps is ever mid-flush to the terminal. The
    error pump never waits on the output pump.
    """

    def __init__(
        self,
        terminal: TerminalPort,
        error_color: Color = Color.RED,
    ) -> None:
        self._terminal = terminal
        self._error_color = error_color
        self._buffer = bytearray()
        self._condition = asyncio.Condition()

    @property
    def pending(self) -> bool:
        """True while error text is staged but not yet flushed."""
        return bool(self._buffer)

    def stage_error(self, data: bytes) -> None:
        """Add stderr bytes. Output flushes are held back from here on."""
        self._buffer.extend(data)

    async def flush_error(self) -> None:
        """Write the staged error text in bold red and release waiters."""
        async with self._condition:
            try:
                if self._buffer:
                    await self._terminal.write_styled(
                        bytes(self._buffer), self._error_color, bold=True,
                    )
            finally:
                self._buffer.clear()
                self._condition.notify_all()

    async def flush_output(self, data: bytes) -> None:
        """Write a stdout batch once no error text is pending."""
        async with self._condition:
            if self._buffer:
                logger.debug("Output waiting for %d bytes of error text", len(self._buffer))
            await self._condition.wait_for(lambda: not self._buffer)
            await self._terminal.write(data)
