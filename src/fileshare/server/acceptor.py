"""Connection acceptor with a fixed-size pool of session workers.

This module provides:
- ConnectionAcceptor: accepts TCP connections and serves each one with a
  ConnectionSession on a bounded pool of worker threads
- AcceptorState: lifecycle of the acceptor

When every worker is busy, accepted connections wait in the queue until a
worker frees up; they are never rejected.
"""

from __future__ import annotations

import logging
import queue
import socket
import threading
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from fileshare.server.session import ConnectionSession

if TYPE_CHECKING:
    from fileshare.core.config import ServerConfig
    from fileshare.server.storage import FileStore

logger = logging.getLogger(__name__)

# How long the accept loop blocks before re-checking the acceptor state
ACCEPT_POLL_INTERVAL = 0.5

# Join timeout for workers after sessions were aborted
ABORT_JOIN_TIMEOUT = 2.0


class AcceptorState(Enum):
    """State of the connection acceptor."""

    STOPPED = auto()
    RUNNING = auto()
    STOPPING = auto()


class ConnectionAcceptor:
    """Accepts connections and hands each to a pool of session workers.

    Usage:
        acceptor = ConnectionAcceptor(config, store)
        acceptor.start()
        ...
        acceptor.shutdown(grace_period=5.0)
    """

    def __init__(self, config: ServerConfig, store: FileStore) -> None:
        """Initialize the acceptor.

        Args:
            config: Server configuration (host, port, pool size, timeouts).
            store: Shared file store served to every session.
        """
        self._config = config
        self._store = store
        self._max_workers = config.max_clients

        self._state = AcceptorState.STOPPED
        self._lock = threading.Lock()
        self._stopped = threading.Event()

        self._server_socket: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None

        # Accepted connections waiting for a worker; None stops a worker
        self._queue: queue.Queue[tuple[socket.socket, tuple[str, int]] | None] = (
            queue.Queue()
        )
        self._workers: list[threading.Thread] = []
        self._active_sessions: set[ConnectionSession] = set()

        # Statistics
        self._accepted_count = 0
        self._completed_count = 0

    @property
    def state(self) -> AcceptorState:
        """Get current acceptor state."""
        return self._state

    @property
    def address(self) -> tuple[str, int]:
        """Get the bound (host, port); useful when configured with port 0."""
        if self._server_socket is None:
            raise RuntimeError("Acceptor is not started")
        host, port = self._server_socket.getsockname()[:2]
        return host, port

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def active_count(self) -> int:
        """Get number of sessions being served."""
        with self._lock:
            return len(self._active_sessions)

    @property
    def queued_count(self) -> int:
        """Get number of accepted connections waiting for a worker."""
        return self._queue.qsize()

    @property
    def accepted_count(self) -> int:
        return self._accepted_count

    @property
    def sessions_completed(self) -> int:
        """Get number of sessions that have ended."""
        with self._lock:
            return self._completed_count

    def start(self) -> None:
        """Bind the listening socket and start the accept loop and workers.

        Raises:
            OSError: If the address cannot be bound.
        """
        with self._lock:
            if self._state != AcceptorState.STOPPED:
                logger.warning("Acceptor already running")
                return

            server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                server_socket.bind((self._config.host, self._config.port))
                server_socket.listen()
                server_socket.settimeout(ACCEPT_POLL_INTERVAL)
            except OSError:
                server_socket.close()
                raise
            self._server_socket = server_socket
            self._stopped.clear()
            self._state = AcceptorState.RUNNING

            for i in range(self._max_workers):
                thread = threading.Thread(
                    target=self._worker_loop,
                    name=f"SessionWorker-{i}",
                    daemon=True,
                )
                thread.start()
                self._workers.append(thread)

            self._accept_thread = threading.Thread(
                target=self._accept_loop,
                name="Acceptor",
                daemon=True,
            )
            self._accept_thread.start()

        host, port = self.address
        logger.info(
            f"Accepting connections on {host}:{port} "
            f"with {self._max_workers} workers"
        )

    def serve_forever(self) -> None:
        """Start if needed and block until shutdown() completes."""
        if self._state == AcceptorState.STOPPED:
            self.start()
        self._stopped.wait()

    def shutdown(self, grace_period: float | None = None) -> bool:
        """Stop accepting and wind down all sessions.

        Active sessions finish their current command; those still running
        after grace_period seconds are aborted.

        Args:
            grace_period: Seconds to wait for sessions. Defaults to the
                configured grace period.

        Returns:
            True if every session ended within the grace period.
        """
        if grace_period is None:
            grace_period = self._config.grace_period

        with self._lock:
            if self._state != AcceptorState.RUNNING:
                return True
            self._state = AcceptorState.STOPPING
            logger.info("Acceptor stopping...")

        # Stop accepting
        if self._accept_thread is not None:
            self._accept_thread.join()
        if self._server_socket is not None:
            self._server_socket.close()

        # Drop connections that never reached a worker
        dropped = self._drain_queue()
        if dropped:
            logger.info(f"Closed {dropped} queued connection(s)")

        with self._lock:
            sessions = list(self._active_sessions)
        for session in sessions:
            session.request_stop()

        # Poison pills stop the workers once their session is over
        for _ in self._workers:
            self._queue.put(None)

        deadline = time.monotonic() + grace_period
        for worker in self._workers:
            worker.join(timeout=max(0.0, deadline - time.monotonic()))

        graceful = not any(worker.is_alive() for worker in self._workers)
        if not graceful:
            with self._lock:
                remaining = list(self._active_sessions)
            logger.warning(
                f"Grace period expired, aborting {len(remaining)} session(s)"
            )
            for session in remaining:
                session.abort()
            for worker in self._workers:
                worker.join(timeout=ABORT_JOIN_TIMEOUT)

        with self._lock:
            self._state = AcceptorState.STOPPED
            self._workers.clear()
            self._server_socket = None
            self._accept_thread = None
        self._stopped.set()
        logger.info("Acceptor stopped")
        return graceful

    def _accept_loop(self) -> None:
        """Accept connections and queue them for the workers."""
        server_socket = self._server_socket
        assert server_socket is not None

        while self._state == AcceptorState.RUNNING:
            try:
                client_socket, address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._state == AcceptorState.RUNNING:
                    logger.error(f"Error accepting client connection: {e}")
                    time.sleep(ACCEPT_POLL_INTERVAL)
                continue

            # Accepted sockets must block regardless of the listener timeout
            client_socket.settimeout(None)
            self._accepted_count += 1
            logger.info(f"New client connected: {address[0]}:{address[1]}")
            if self.queued_count or self.active_count >= self._max_workers:
                logger.info(
                    f"All {self._max_workers} workers busy, "
                    f"{address[0]}:{address[1]} is waiting"
                )
            self._queue.put((client_socket, address))

    def _worker_loop(self) -> None:
        """Main loop for worker threads."""
        while True:
            item = self._queue.get()
            if item is None:
                # Poison pill - stop worker
                break

            client_socket, address = item
            if self._state != AcceptorState.RUNNING:
                client_socket.close()
                continue

            session = ConnectionSession(
                client_socket,
                address,
                self._store,
                read_timeout=self._config.read_timeout,
            )
            with self._lock:
                self._active_sessions.add(session)
            try:
                session.run()
            except Exception:
                logger.exception(f"Unexpected error in worker for {session.peer}")
            finally:
                with self._lock:
                    self._active_sessions.discard(session)
                    self._completed_count += 1

    def _drain_queue(self) -> int:
        """Close connections still waiting in the queue."""
        dropped = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return dropped
            if item is not None:
                item[0].close()
                dropped += 1
