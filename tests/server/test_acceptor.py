"""Tests for ConnectionAcceptor."""

import threading
import time
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from fileshare.core.channel import FramedChannel
from fileshare.core.config import ServerConfig
from fileshare.core.protocol import (
    ListCommand,
    QuitCommand,
    UploadCommand,
    read_response,
    write_command,
)
from fileshare.server.acceptor import AcceptorState, ConnectionAcceptor
from fileshare.server.storage import LocalFileStore


def wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll until condition() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return condition()


@pytest.fixture
def make_acceptor(
    tmp_path: Path,
) -> Generator[Callable[..., ConnectionAcceptor], None, None]:
    """Factory for started acceptors on an ephemeral port."""
    acceptors: list[ConnectionAcceptor] = []

    def factory(max_clients: int = 2, grace_period: float = 2.0) -> ConnectionAcceptor:
        config = ServerConfig(
            host="127.0.0.1",
            port=0,
            shared_folder=tmp_path / "shared",
            max_clients=max_clients,
            grace_period=grace_period,
        )
        acceptor = ConnectionAcceptor(config, LocalFileStore(config.shared_folder))
        acceptor.start()
        acceptors.append(acceptor)
        return acceptor

    yield factory
    for acceptor in acceptors:
        acceptor.shutdown(grace_period=0.5)


def connect(acceptor: ConnectionAcceptor) -> FramedChannel:
    host, port = acceptor.address
    return FramedChannel.connect(host, port, timeout=5.0)


def list_files(channel: FramedChannel) -> str:
    write_command(channel, ListCommand())
    channel.flush()
    return read_response(channel).message


class TestConnectionAcceptor:
    """Tests for accepting and dispatching connections."""

    def test_start_binds_ephemeral_port(
        self, make_acceptor: Callable[..., ConnectionAcceptor]
    ) -> None:
        """Port 0 resolves to a real port once started."""
        acceptor = make_acceptor()
        assert acceptor.state == AcceptorState.RUNNING
        assert acceptor.address[1] > 0
        assert acceptor.max_workers == 2

    def test_address_before_start(self, tmp_path: Path) -> None:
        """The address is unknown before start()."""
        config = ServerConfig(port=0, shared_folder=tmp_path)
        acceptor = ConnectionAcceptor(config, LocalFileStore(tmp_path))
        with pytest.raises(RuntimeError):
            _ = acceptor.address

    def test_serves_connection(self, make_acceptor: Callable[..., ConnectionAcceptor]) -> None:
        """A connected client is served by a worker."""
        acceptor = make_acceptor()
        with connect(acceptor) as channel:
            assert "No files" in list_files(channel)
        assert acceptor.accepted_count == 1

    def test_sessions_are_independent(
        self, make_acceptor: Callable[..., ConnectionAcceptor]
    ) -> None:
        """One client disconnecting does not affect another."""
        acceptor = make_acceptor()
        first = connect(acceptor)
        second = connect(acceptor)
        list_files(first)
        first.close()

        assert "No files" in list_files(second)
        second.close()
        assert wait_for(lambda: acceptor.sessions_completed == 2)

    def test_excess_clients_wait_for_a_worker(
        self, make_acceptor: Callable[..., ConnectionAcceptor]
    ) -> None:
        """With every worker busy, a new connection is queued, not refused."""
        acceptor = make_acceptor(max_clients=1)
        first = connect(acceptor)
        list_files(first)
        waiting = connect(acceptor)
        write_command(waiting, ListCommand())
        waiting.flush()
        assert wait_for(lambda: acceptor.queued_count == 1)

        write_command(first, QuitCommand())
        first.flush()
        read_response(first)
        first.close()

        assert read_response(waiting).is_ok
        waiting.close()

    def test_graceful_shutdown(self, make_acceptor: Callable[..., ConnectionAcceptor]) -> None:
        """Idle sessions are closed and shutdown reports success."""
        acceptor = make_acceptor()
        channel = connect(acceptor)
        list_files(channel)

        assert acceptor.shutdown(grace_period=2.0) is True
        assert acceptor.state == AcceptorState.STOPPED
        assert acceptor.active_count == 0
        channel.close()

    def test_shutdown_aborts_stuck_transfer(
        self, make_acceptor: Callable[..., ConnectionAcceptor], tmp_path: Path
    ) -> None:
        """A transfer still running after the grace period is aborted."""
        acceptor = make_acceptor()
        channel = connect(acceptor)
        write_command(channel, UploadCommand("stuck.bin", 1_000_000))
        channel.write_bytes(b"x" * 100)
        channel.flush()
        assert wait_for(lambda: acceptor.active_count == 1)
        time.sleep(0.1)

        assert acceptor.shutdown(grace_period=0.2) is False
        assert acceptor.state == AcceptorState.STOPPED
        assert not (tmp_path / "shared" / "stuck.bin").exists()
        channel.close()

    def test_shutdown_twice(self, make_acceptor: Callable[..., ConnectionAcceptor]) -> None:
        """A second shutdown is a no-op."""
        acceptor = make_acceptor()
        assert acceptor.shutdown(grace_period=1.0) is True
        assert acceptor.shutdown(grace_period=1.0) is True

    def test_serve_forever_returns_after_shutdown(
        self, make_acceptor: Callable[..., ConnectionAcceptor]
    ) -> None:
        """serve_forever blocks until shutdown completes."""
        acceptor = make_acceptor()
        thread = threading.Thread(target=acceptor.serve_forever, daemon=True)
        thread.start()
        time.sleep(0.1)
        assert thread.is_alive()

        acceptor.shutdown(grace_period=1.0)
        thread.join(5.0)
        assert not thread.is_alive()
