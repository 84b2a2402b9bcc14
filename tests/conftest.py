"""Shared test fixtures for the shellgate test suite."""

from __future__ import annotations

import pytest

from fakes import FakeConnection, FakeTerminal
from shellgate.config.settings import Settings


@pytest.fixture
def terminal() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def connection(terminal: FakeTerminal) -> FakeConnection:
    return FakeConnection(terminal)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with the banner off and the shell rooted in a temp dir."""
    s = Settings()
    s.session.show_banner = False
    s.shell.working_dir = str(tmp_path)
    s.shell.drain_timeout = 0.5
    return s
