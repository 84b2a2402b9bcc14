"""Tests for the telnet daemon (telnetlib3 mocked, no sockets)."""

from __future__ import annotations

import asyncio
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from shellgate.config.settings import Settings
from shellgate.server.daemon import TelnetDaemon


def make_writer(host: str = "127.0.0.1") -> MagicMock:
    writer = MagicMock()
    writer.get_extra_info.return_value = (host, 50000)
    writer.is_closing.return_value = False
    writer.drain = AsyncMock()
    return writer


def make_reader(data: bytes = b"") -> MagicMock:
    reader = MagicMock()
    reader.read = AsyncMock(return_value=data)
    return reader


def written(writer: MagicMock) -> bytes:
    return b"".join(c.args[0] for c in writer.write.call_args_list)


class TestAllowList:
    def test_empty_list_allows_everyone(self, settings: Settings) -> None:
        assert TelnetDaemon(settings).is_allowed("203.0.113.9")

    def test_listed_host(self, settings: Settings) -> None:
        settings.server.allowed_hosts = ["127.0.0.1"]
        daemon = TelnetDaemon(settings)
        assert daemon.is_allowed("127.0.0.1")
        assert not daemon.is_allowed("203.0.113.9")

    @pytest.mark.asyncio
    async def test_refused_host_is_closed(self, settings: Settings) -> None:
        settings.server.allowed_hosts = ["127.0.0.1"]
        daemon = TelnetDaemon(settings)
        writer = make_writer(host="203.0.113.9")
        await daemon.handle_client(make_reader(), writer)
        writer.close.assert_called_once()
        assert daemon.sessions == {}


class TestCapacity:
    @pytest.mark.asyncio
    async def test_full_daemon_refuses(self, settings: Settings) -> None:
        settings.server.max_connections = 1
        daemon = TelnetDaemon(settings)
        daemon._sessions["busy"] = MagicMock()
        writer = make_writer()
        await daemon.handle_client(make_reader(), writer)
        assert b"Too many connections" in written(writer)
        writer.close.assert_called_once()
        assert list(daemon.sessions) == ["busy"]


class TestHandleClient:
    @pytest.mark.asyncio
    async def test_session_runs_and_is_removed(self, settings: Settings) -> None:
        settings.shell.command = [sys.executable, "-c", "print('hi')"]
        settings.session.time_to_warning = 0
        daemon = TelnetDaemon(settings)
        writer = make_writer()
        # Peer sends nothing more; reads report EOF
        await daemon.handle_client(make_reader(b""), writer)
        assert b"hi\r\n" in written(writer)
        assert daemon.sessions == {}
        writer.close.assert_called_once()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_uses_binary_mode(self, settings: Settings) -> None:
        settings.server.host = "127.0.0.1"
        settings.server.port = 2424
        server = MagicMock()
        server.wait_closed = AsyncMock()
        with patch("telnetlib3.create_server", AsyncMock(return_value=server)) as create:
            daemon = TelnetDaemon(settings)
            await daemon.start()
        kwargs = create.call_args.kwargs
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 2424
        assert kwargs["encoding"] is False
        assert kwargs["shell"] == daemon.handle_client
        assert daemon.is_serving

        await daemon.stop()
        server.close.assert_called_once()
        assert not daemon.is_serving

    @pytest.mark.asyncio
    async def test_stop_kills_sessions(self, settings: Settings) -> None:
        daemon = TelnetDaemon(settings)
        session = MagicMock()
        session.kill = AsyncMock()
        daemon._sessions["s1"] = session
        await daemon.stop()
        session.kill.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_serve_forever_returns_after_stop(self, settings: Settings) -> None:
        server = MagicMock()
        server.wait_closed = AsyncMock()
        with patch("telnetlib3.create_server", AsyncMock(return_value=server)):
            daemon = TelnetDaemon(settings)
            await daemon.start()
            task = asyncio.create_task(daemon.serve_forever())
            await asyncio.sleep(0)
            assert not task.done()
            await daemon.stop()
            await asyncio.wait_for(task, timeout=1)
