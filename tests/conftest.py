"""Shared pytest fixtures."""

from __future__ import annotations

import socket
from collections.abc import Generator
from pathlib import Path

import pytest

from fileshare.core.channel import FramedChannel
from fileshare.server.storage import LocalFileStore


@pytest.fixture
def channel_pair() -> Generator[tuple[FramedChannel, FramedChannel], None, None]:
    """Two channels connected to each other through a socketpair."""
    left_sock, right_sock = socket.socketpair()
    left = FramedChannel(left_sock)
    right = FramedChannel(right_sock)
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def store(tmp_path: Path) -> LocalFileStore:
    """Create a LocalFileStore in a temporary shared folder."""
    return LocalFileStore(tmp_path / "shared")
