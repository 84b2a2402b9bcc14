"""Tests for the telnetlib3-backed terminal (mocked reader/writer)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from shellgate.terminal.keys import RESET_ATTRIBUTES, Color, foreground, sgr
from shellgate.terminal.port import ConnectionClosedError, TerminalIOError, to_crlf
from shellgate.terminal.telnet import TelnetTerminal


@pytest.fixture
def reader() -> MagicMock:
    r = MagicMock()
    r.read = AsyncMock(return_value=b"a")
    return r


@pytest.fixture
def writer() -> MagicMock:
    w = MagicMock()
    w.is_closing.return_value = False
    w.drain = AsyncMock()
    return w


class TestRead:
    @pytest.mark.asyncio
    async def test_read_byte(self, reader: MagicMock, writer: MagicMock) -> None:
        terminal = TelnetTerminal(reader, writer)
        assert await terminal.read_byte() == ord("a")
        reader.read.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_read_str_from_text_mode_reader(self, reader: MagicMock, writer: MagicMock) -> None:
        reader.read.return_value = "z"
        assert await TelnetTerminal(reader, writer).read_byte() == ord("z")

    @pytest.mark.asyncio
    async def test_eof_raises_closed(self, reader: MagicMock, writer: MagicMock) -> None:
        reader.read.return_value = b""
        with pytest.raises(ConnectionClosedError):
            await TelnetTerminal(reader, writer).read_byte()

    @pytest.mark.asyncio
    async def test_reset_raises_closed(self, reader: MagicMock, writer: MagicMock) -> None:
        reader.read.side_effect = ConnectionResetError("reset by peer")
        with pytest.raises(ConnectionClosedError, match="reset by peer"):
            await TelnetTerminal(reader, writer).read_byte()

    @pytest.mark.asyncio
    async def test_other_os_error(self, reader: MagicMock, writer: MagicMock) -> None:
        reader.read.side_effect = OSError("bad descriptor")
        with pytest.raises(TerminalIOError) as exc_info:
            await TelnetTerminal(reader, writer).read_byte()
        assert not isinstance(exc_info.value, ConnectionClosedError)

    @pytest.mark.asyncio
    async def test_on_input_called_per_byte(self, reader: MagicMock, writer: MagicMock) -> None:
        seen = MagicMock()
        terminal = TelnetTerminal(reader, writer, on_input=seen)
        await terminal.read_byte()
        await terminal.read_byte()
        assert seen.call_count == 2


class TestWrite:
    @pytest.mark.asyncio
    async def test_write_bytes_and_drain(self, reader: MagicMock, writer: MagicMock) -> None:
        await TelnetTerminal(reader, writer).write(b"hi")
        writer.write.assert_called_once_with(b"hi")
        writer.drain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_str_encodes(self, reader: MagicMock, writer: MagicMock) -> None:
        await TelnetTerminal(reader, writer, encoding="latin-1").write("é")
        writer.write.assert_called_once_with(b"\xe9")

    @pytest.mark.asyncio
    async def test_no_autoflush(self, reader: MagicMock, writer: MagicMock) -> None:
        await TelnetTerminal(reader, writer, autoflush=False).write(b"x")
        writer.drain.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_to_closing_writer(self, reader: MagicMock, writer: MagicMock) -> None:
        writer.is_closing.return_value = True
        with pytest.raises(ConnectionClosedError):
            await TelnetTerminal(reader, writer).write(b"x")
        writer.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_broken_pipe_on_drain(self, reader: MagicMock, writer: MagicMock) -> None:
        writer.drain.side_effect = BrokenPipeError()
        with pytest.raises(ConnectionClosedError):
            await TelnetTerminal(reader, writer).write(b"x")

    @pytest.mark.asyncio
    async def test_write_styled_is_one_write(self, reader: MagicMock, writer: MagicMock) -> None:
        await TelnetTerminal(reader, writer).write_styled("oops", Color.RED, bold=True)
        writer.write.assert_called_once_with(
            foreground(Color.RED) + sgr(1) + b"oops" + RESET_ATTRIBUTES
        )


class TestHelpers:
    @pytest.mark.asyncio
    async def test_move_left_zero_is_noop(self, reader: MagicMock, writer: MagicMock) -> None:
        await TelnetTerminal(reader, writer).move_left(0)
        writer.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_move_left(self, reader: MagicMock, writer: MagicMock) -> None:
        await TelnetTerminal(reader, writer).move_left(4)
        writer.write.assert_called_once_with(b"\x1b[4D")

    @pytest.mark.asyncio
    async def test_close(self, reader: MagicMock, writer: MagicMock) -> None:
        await TelnetTerminal(reader, writer).close()
        writer.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_when_already_closing(self, reader: MagicMock, writer: MagicMock) -> None:
        writer.is_closing.return_value = True
        await TelnetTerminal(reader, writer).close()
        writer.close.assert_not_called()


class TestToCrlf:
    def test_bare_lf(self) -> None:
        assert to_crlf(b"a\nb\n") == b"a\r\nb\r\n"

    def test_existing_crlf_untouched(self) -> None:
        assert to_crlf(b"a\r\nb") == b"a\r\nb"
