"""Pytest fixtures for integration tests.

This module provides fixtures for end-to-end testing with a real server
listening on an ephemeral localhost port, backed by a temporary folder.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path

import pytest

from fileshare.client.api import FileShareClient
from fileshare.core.config import ClientConfig, ServerConfig
from fileshare.server.acceptor import ConnectionAcceptor
from fileshare.server.app import create_server


@dataclass
class TestServer:
    """Container for test server resources."""

    __test__ = False

    acceptor: ConnectionAcceptor
    shared_folder: Path
    host: str
    port: int

    def file_path(self, name: str) -> Path:
        """Path of a file in the shared folder."""
        return self.shared_folder / name

    def stop(self, grace_period: float = 1.0) -> bool:
        """Shut the server down."""
        return self.acceptor.shutdown(grace_period=grace_period)


@pytest.fixture
def test_server(tmp_path: Path) -> Generator[TestServer, None, None]:
    """Start a real server in background threads."""
    shared = tmp_path / "shared_files"
    config = ServerConfig(
        host="127.0.0.1",
        port=0,
        shared_folder=shared,
        max_clients=4,
        grace_period=1.0,
    )
    acceptor = create_server(config)
    acceptor.start()
    host, port = acceptor.address

    server = TestServer(
        acceptor=acceptor,
        shared_folder=shared.resolve(),
        host=host,
        port=port,
    )
    yield server
    server.stop(grace_period=0.5)


@pytest.fixture
def client_factory(
    test_server: TestServer, tmp_path: Path
) -> Generator[Callable[[str], FileShareClient], None, None]:
    """Create connected clients, each with its own download folder."""
    clients: list[FileShareClient] = []

    def factory(name: str = "client") -> FileShareClient:
        config = ClientConfig(
            host=test_server.host,
            port=test_server.port,
            download_folder=tmp_path / name / "downloads",
            timeout=10.0,
        )
        client = FileShareClient(config)
        client.connect()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()
