"""Connection session: one client connection, end to end.

This module provides:
- ConnectionSession: owns the FramedChannel of one connection and runs the
  read command -> dispatch -> respond loop until QUIT or a connection error

States:
    ACTIVE -> CLOSING -> CLOSED
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from typing import TYPE_CHECKING

from fileshare.core.channel import FramedChannel
from fileshare.core.errors import CommandError, ConnectionClosed, ProtocolError
from fileshare.core.protocol import read_command
from fileshare.core.types import SessionState
from fileshare.server.handlers import CommandHandler

if TYPE_CHECKING:
    from fileshare.server.storage import FileStore

logger = logging.getLogger(__name__)


class ConnectionSession:
    """Serves one client connection.

    The session is driven by a single worker thread through run(). Other
    threads may only call request_stop() or abort().

    Usage:
        session = ConnectionSession(client_socket, address, store)
        session.run()  # returns when the client quits or disconnects
    """

    def __init__(
        self,
        sock: socket.socket,
        address: tuple[str, int] | str,
        store: FileStore,
        read_timeout: float | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            sock: Accepted client socket. The session takes ownership.
            address: Remote address, used in log lines.
            store: Shared file store.
            read_timeout: Optional socket timeout in seconds.
        """
        if isinstance(address, tuple):
            self.peer = f"{address[0]}:{address[1]}"
        else:
            self.peer = address
        self._sock = sock
        self._store = store
        self._read_timeout = read_timeout
        self._channel: FramedChannel | None = None

        self._state = SessionState.ACTIVE
        self._lock = threading.Lock()
        self._busy = False
        self._stop_requested = False
        self._cleaned_up = False

        self.commands_handled = 0
        self.started_at: float | None = None

    @property
    def state(self) -> SessionState:
        """Get current session state."""
        return self._state

    def run(self) -> None:
        """Serve commands until QUIT, disconnect or a connection error.

        Never raises: every failure is logged and ends this session only.
        """
        self.started_at = time.monotonic()
        prefix = f"[{self.peer}] "
        logger.info(f"{prefix}Client handler started")

        try:
            self._channel = FramedChannel(self._sock, read_timeout=self._read_timeout)
            handler = CommandHandler(self._channel, self._store, peer=self.peer)

            while True:
                with self._lock:
                    if self._stop_requested:
                        logger.info(f"{prefix}Stop requested, ending session")
                        break
                    self._busy = False

                self._channel.wait_for_data()

                # A command has started arriving; stop requests now wait for it
                with self._lock:
                    if self._stop_requested:
                        logger.info(f"{prefix}Stop requested, ending session")
                        break
                    self._busy = True

                command = read_command(self._channel)
                logger.info(f"{prefix}Command: {type(command).__name__}")

                keep_going = handler.handle(command)
                self.commands_handled += 1
                if not keep_going:
                    break

        except ConnectionClosed as e:
            if self._stop_requested:
                logger.info(f"{prefix}Session stopped: {e}")
            else:
                logger.info(f"{prefix}Client disconnected: {e}")
        except ProtocolError as e:
            logger.warning(f"{prefix}Protocol error: {e}")
        except CommandError as e:
            # Raised after a response header was sent; the stream cannot be resynchronized
            logger.error(f"{prefix}Transfer aborted, closing connection: {e}")
        except OSError as e:
            logger.warning(f"{prefix}Connection error: {e}")
        except Exception:
            logger.exception(f"{prefix}Unexpected error in session")
        finally:
            self._close()

    def request_stop(self) -> None:
        """Ask the session to end after its current command.

        An idle session, blocked waiting for the next command, is woken up
        immediately by shutting down the read side of its socket.
        """
        with self._lock:
            self._stop_requested = True
            if self._state != SessionState.ACTIVE or self._busy:
                return
        self._shutdown(socket.SHUT_RD)

    def abort(self) -> None:
        """Force the session to end, interrupting any transfer in progress."""
        with self._lock:
            self._stop_requested = True
            if self._state == SessionState.CLOSED:
                return
        logger.warning(f"[{self.peer}] Aborting session")
        self._shutdown(socket.SHUT_RDWR)

    def _shutdown(self, how: int) -> None:
        if self._channel is not None:
            self._channel.shutdown(how)
            return
        try:
            self._sock.shutdown(how)
        except OSError:
            pass

    def _close(self) -> None:
        """Release the channel and socket exactly once."""
        with self._lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True
            self._state = SessionState.CLOSING

        if self._channel is not None:
            self._channel.close()
        else:
            try:
                self._sock.close()
            except OSError as e:
                logger.debug(f"Error closing socket: {e}")

        with self._lock:
            self._state = SessionState.CLOSED
        elapsed = time.monotonic() - (self.started_at or time.monotonic())
        logger.info(
            f"[{self.peer}] Session closed after {self.commands_handled} commands "
            f"({elapsed:.1f}s)"
        )
