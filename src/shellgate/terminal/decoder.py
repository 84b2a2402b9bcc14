"""Decoder turning raw terminal bytes into normalized key events.

The decoder is a small explicit state machine::

    NORMAL --ESC--> ESCAPE --'['--> CSI --digit--> PARAM --final--> FINAL
                                     \\-------------final-----------/

A numeric parameter on a motion or delete sequence is a repeat count:
``ESC [ 3 D`` is three LEFT presses. The first event is returned at once
and the rest are queued, so the editor sees N discrete steps. Counts are
capped at ``keys.MAX_REPEAT``. Further ``;``-separated parameters (the
xterm modifier in ``ESC [ 1 ; 5 D``) are read and ignored.

The decoder never raises on malformed input. Anything it cannot map
becomes ``UNRECOGNIZED``.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Callable

from shellgate.terminal import keys
from shellgate.terminal.keys import KeyEvent
from shellgate.terminal.port import TerminalPort

logger = logging.getLogger(__name__)


class DecoderState(enum.Enum):
    """Position of the decoder within an escape sequence."""

    NORMAL = "normal"
    ESCAPE = "escape"  # Seen ESC
    CSI = "csi"  # Seen ESC [
    PARAM = "param"  # Accumulating repeat count digits
    FINAL = "final"  # Dispatching on the final byte


class KeyDecoder:
    """Reads bytes from a terminal and yields ``KeyEvent`` values.

    Args:
        terminal: Source of raw bytes.
        on_logout: Called when the peer sends the logout control (Ctrl+D).
            The decoder then returns ``HANDLED`` instead of an edit.
    """

    def __init__(
        self,
        terminal: TerminalPort,
        on_logout: Callable[[], None] | None = None,
    ) -> None:
        self._terminal = terminal
        self._on_logout = on_logout
        self._pending: deque[KeyEvent] = deque()
        self._state = DecoderState.NORMAL
        # After CR, a following LF or NUL belongs to the same ENTER
        self._after_cr = False

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of already decoded events waiting for delivery."""
        return len(self._pending)

    async def next(self) -> KeyEvent:
        """Return the next key event, reading the terminal only when needed."""
        if self._pending:
            return self._pending.popleft()

        byte = await self._read()
        if byte == keys.EOT:
            logger.info("Logout request received")
            if self._on_logout is not None:
                self._on_logout()
            return keys.HANDLED
        if byte == keys.ESC:
            return await self._decode_escape()

        event = keys.CONTROL_KEYS.get(byte)
        if event is not None:
            if byte == keys.CR:
                self._after_cr = True
            return event
        return KeyEvent.printable(byte)

    async def _read(self) -> int:
        byte = await self._terminal.read_byte()
        if self._after_cr:
            self._after_cr = False
            if byte in (keys.LF, keys.NUL):
                byte = await self._terminal.read_byte()
        logger.debug("Read byte %d", byte)
        return byte

    async def _decode_escape(self) -> KeyEvent:
        self._state = DecoderState.ESCAPE
        count = 0
        first_param = True
        try:
            while True:
                byte = await self._read()
                if self._state is DecoderState.ESCAPE:
                    if byte != keys.LSB:
                        return self._unrecognized(byte)
                    self._state = DecoderState.CSI
                elif 0x30 <= byte <= 0x3F:
                    # Only the first parameter counts; modifiers after ';' are dropped
                    self._state = DecoderState.PARAM
                    if byte == keys.SEMICOLON:
                        first_param = False
                    elif byte <= 0x39 and first_param:
                        count = min(count * 10 + (byte - 0x30), keys.MAX_REPEAT)
                elif 0x20 <= byte <= 0x2F:
                    self._state = DecoderState.PARAM  # intermediate byte
                elif 0x40 <= byte <= 0x7E:
                    self._state = DecoderState.FINAL
                    return self._dispatch(byte, count)
                else:
                    return self._unrecognized(byte, count)
        finally:
            self._state = DecoderState.NORMAL

    def _dispatch(self, final: int, count: int) -> KeyEvent:
        if final == keys.TILDE:
            event = keys.CSI_TILDE_KEYS.get(count)
            if event is None:
                return self._unrecognized(final, count)
            return event

        event = keys.CSI_FINAL_KEYS.get(final)
        if event is None:
            return self._unrecognized(final, count)
        repeat = max(count, 1)
        if repeat > 1:
            logger.debug("Expanding %s x%d", event, repeat)
        self._pending.extend([event] * (repeat - 1))
        return event

    def _unrecognized(self, byte: int, count: int = 0) -> KeyEvent:
        logger.warning(
            "Unrecognized escape sequence ending in %d (%r), parameter %d",
            byte, chr(byte), count,
        )
        return keys.UNRECOGNIZED
