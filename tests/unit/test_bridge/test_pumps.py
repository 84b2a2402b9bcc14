"""Tests for the stdout, stderr and stdin pumps."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeConnection, FakeTerminal

from shellgate.bridge.channel import SharedErrorChannel
from shellgate.bridge.pumps import ErrorPump, InputPump, OutputPump
from shellgate.editor.line_editor import LineEditor
from shellgate.terminal import keys
from shellgate.terminal.keys import Color, foreground
from shellgate.terminal.port import TerminalIOError


class FailingTerminal(FakeTerminal):
    async def write(self, data: str | bytes) -> None:
        raise TerminalIOError("write failed")


def stream_with(data: bytes) -> asyncio.StreamReader:
    stream = asyncio.StreamReader()
    stream.feed_data(data)
    stream.feed_eof()
    return stream


@pytest.fixture
def stdin() -> MagicMock:
    s = MagicMock()
    s.drain = AsyncMock()
    return s


class TestOutputPump:
    @pytest.mark.asyncio
    async def test_copies_until_eof(self, terminal: FakeTerminal, connection: FakeConnection) -> None:
        pump = OutputPump(stream_with(b"one\ntwo\n"), SharedErrorChannel(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        assert terminal.output == b"one\r\ntwo\r\n"

    @pytest.mark.asyncio
    async def test_small_read_size_splits_batches(
        self, terminal: FakeTerminal, connection: FakeConnection,
    ) -> None:
        pump = OutputPump(stream_with(b"abcdef"), SharedErrorChannel(terminal), connection, read_size=4)
        await asyncio.wait_for(pump.run(), timeout=1)
        assert terminal.writes == [b"abcd", b"ef"]

    @pytest.mark.asyncio
    async def test_inactive_connection_stops_pump(
        self, terminal: FakeTerminal, connection: FakeConnection,
    ) -> None:
        connection.is_active = False
        pump = OutputPump(stream_with(b"ignored"), SharedErrorChannel(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        assert terminal.writes == []

    @pytest.mark.asyncio
    async def test_terminal_failure_ends_pump(self, connection: FakeConnection) -> None:
        terminal = FailingTerminal()
        pump = OutputPump(stream_with(b"data"), SharedErrorChannel(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)


class TestErrorPump:
    @pytest.mark.asyncio
    async def test_writes_bold_red(self, terminal: FakeTerminal, connection: FakeConnection) -> None:
        channel = SharedErrorChannel(terminal)
        pump = ErrorPump(stream_with(b"bad\n"), channel, connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        assert terminal.output.startswith(foreground(Color.RED))
        assert terminal.text == b"bad\r\n"
        assert not channel.pending


class TestInputPump:
    @pytest.mark.asyncio
    async def test_forwards_completed_line(
        self, terminal: FakeTerminal, connection: FakeConnection, stdin: MagicMock,
    ) -> None:
        terminal.feed(b"ls\r")
        terminal.close_input()
        pump = InputPump(stdin, terminal, LineEditor(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        stdin.write.assert_called_once_with(b"ls\n")
        stdin.drain.assert_awaited_once()
        assert terminal.output == b"ls" + keys.CRLF

    @pytest.mark.asyncio
    async def test_edited_line_is_forwarded(
        self, terminal: FakeTerminal, connection: FakeConnection, stdin: MagicMock,
    ) -> None:
        # "lx", backspace, "s", enter
        terminal.feed(b"lx\x7fs\r\n")
        terminal.close_input()
        pump = InputPump(stdin, terminal, LineEditor(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        stdin.write.assert_called_once_with(b"ls\n")

    @pytest.mark.asyncio
    async def test_logout_ends_pump(
        self, terminal: FakeTerminal, connection: FakeConnection, stdin: MagicMock,
    ) -> None:
        terminal.feed(b"\x04")
        pump = InputPump(stdin, terminal, LineEditor(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        assert pump.logout_requested
        assert connection.logout_requests == 1
        stdin.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_unrecognized_rings_bell(
        self, terminal: FakeTerminal, connection: FakeConnection, stdin: MagicMock,
    ) -> None:
        terminal.feed(b"\x1b[Z")
        terminal.close_input()
        pump = InputPump(stdin, terminal, LineEditor(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        assert terminal.output == keys.BELL

    @pytest.mark.asyncio
    async def test_closed_stdin_ends_pump(
        self, terminal: FakeTerminal, connection: FakeConnection, stdin: MagicMock,
    ) -> None:
        stdin.drain.side_effect = BrokenPipeError()
        terminal.feed(b"x\r")
        pump = InputPump(stdin, terminal, LineEditor(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)

    @pytest.mark.asyncio
    async def test_inactive_connection_reads_nothing(
        self, terminal: FakeTerminal, connection: FakeConnection, stdin: MagicMock,
    ) -> None:
        connection.is_active = False
        pump = InputPump(stdin, terminal, LineEditor(terminal), connection)
        await asyncio.wait_for(pump.run(), timeout=1)
        stdin.write.assert_not_called()
