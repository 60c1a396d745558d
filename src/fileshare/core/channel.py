"""Framed channel over a TCP socket.

This module provides:
- FramedChannel: length-prefixed text frames, fixed-width size frames and raw
  payload bytes over one bidirectional byte stream

Wire format:
- text frame: 4-byte big-endian unsigned length, then UTF-8 bytes
- size frame: 8-byte big-endian unsigned integer
"""

from __future__ import annotations

import logging
import socket
import struct
from typing import TYPE_CHECKING

from fileshare.core.errors import ConnectionClosed, ProtocolError

if TYPE_CHECKING:
    from io import BufferedReader, BufferedWriter

logger = logging.getLogger(__name__)

TEXT_LENGTH = struct.Struct(">I")
SIZE_FIELD = struct.Struct(">Q")

# Largest text frame accepted from a peer (16 MiB)
MAX_TEXT_FRAME = 16 * 1024 * 1024

# Read granularity when draining unwanted payload bytes
DISCARD_CHUNK_SIZE = 64 * 1024


class FramedChannel:
    """Reads and writes protocol frames on a connected socket.

    All reads block until the requested amount is available. If the peer
    closes the stream first, or the socket fails, ConnectionClosed is raised.
    Writes are buffered until flush().

    Usage:
        channel = FramedChannel.connect("localhost", 8080)
        channel.write_text("LIST")
        channel.flush()
        listing = channel.read_text()
        channel.close()
    """

    def __init__(self, sock: socket.socket, read_timeout: float | None = None) -> None:
        """Wrap a connected socket.

        Args:
            sock: Connected stream socket. The channel takes ownership.
            read_timeout: Optional timeout for blocking socket operations.
        """
        self._sock = sock
        self._reader: BufferedReader | None = None
        self._writer: BufferedWriter | None = None
        self._closed = False
        self.bytes_read = 0
        self.bytes_written = 0

        try:
            if read_timeout is not None:
                sock.settimeout(read_timeout)
            self._reader = sock.makefile("rb")
            self._writer = sock.makefile("wb")
        except OSError:
            self.close()
            raise

    @classmethod
    def connect(
        cls, host: str, port: int, timeout: float | None = None
    ) -> FramedChannel:
        """Open a client connection and wrap it in a channel."""
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise ConnectionClosed(f"Could not connect to {host}:{port}: {e}") from e
        return cls(sock, read_timeout=timeout)

    @property
    def closed(self) -> bool:
        """Check if close() has been called."""
        return self._closed

    @property
    def peer(self) -> str:
        """Return the remote address as "host:port"."""
        try:
            host, port = self._sock.getpeername()[:2]
        except OSError:
            return "unknown"
        return f"{host}:{port}"

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_text(self, text: str) -> None:
        """Write one length-prefixed UTF-8 text frame."""
        data = text.encode("utf-8")
        if len(data) > MAX_TEXT_FRAME:
            raise ProtocolError(f"Text frame too large: {len(data)} bytes")
        self._write(TEXT_LENGTH.pack(len(data)) + data)

    def write_size(self, value: int) -> None:
        """Write one 8-byte big-endian size frame."""
        if value < 0:
            raise ValueError(f"Size cannot be negative: {value}")
        self._write(SIZE_FIELD.pack(value))

    def write_bytes(self, data: bytes) -> None:
        """Write raw payload bytes."""
        self._write(data)

    def flush(self) -> None:
        """Push buffered writes to the socket."""
        writer = self._open_writer()
        try:
            writer.flush()
        except OSError as e:
            raise ConnectionClosed(f"Write failed: {e}") from e

    def _write(self, data: bytes) -> None:
        writer = self._open_writer()
        try:
            writer.write(data)
        except OSError as e:
            raise ConnectionClosed(f"Write failed: {e}") from e
        self.bytes_written += len(data)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_text(self) -> str:
        """Read one text frame.

        Raises:
            ConnectionClosed: If the stream ends before the frame is complete.
            ProtocolError: If the frame is oversized or not valid UTF-8.
        """
        (length,) = TEXT_LENGTH.unpack(self.read_exactly(TEXT_LENGTH.size))
        if length > MAX_TEXT_FRAME:
            raise ProtocolError(f"Text frame too large: {length} bytes")
        data = self.read_exactly(length)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Text frame is not valid UTF-8: {e}") from e

    def read_size(self) -> int:
        """Read one 8-byte size frame."""
        (value,) = SIZE_FIELD.unpack(self.read_exactly(SIZE_FIELD.size))
        return int(value)

    def read_exactly(self, size: int) -> bytes:
        """Read exactly size bytes, blocking until they are available."""
        if size == 0:
            return b""
        reader = self._open_reader()
        try:
            data = reader.read(size)
        except OSError as e:
            raise ConnectionClosed(f"Read failed: {e}") from e
        self.bytes_read += len(data)
        if len(data) < size:
            if not data:
                raise ConnectionClosed("Connection closed by peer")
            raise ConnectionClosed(
                f"Connection closed after {len(data)} of {size} bytes"
            )
        return data

    def read_some(self, max_size: int) -> bytes:
        """Read between 1 and max_size payload bytes.

        Returns:
            The bytes read, or b"" if the peer closed the stream.
        """
        reader = self._open_reader()
        try:
            data = reader.read1(max_size)
        except OSError as e:
            raise ConnectionClosed(f"Read failed: {e}") from e
        self.bytes_read += len(data)
        return data

    def wait_for_data(self) -> None:
        """Block until at least one byte can be read, without consuming it.

        Raises:
            ConnectionClosed: If the stream ends or the socket fails first.
        """
        reader = self._open_reader()
        try:
            data = reader.peek(1)
        except OSError as e:
            raise ConnectionClosed(f"Read failed: {e}") from e
        if not data:
            raise ConnectionClosed("Connection closed by peer")

    def discard(self, size: int) -> None:
        """Read and drop size payload bytes."""
        remaining = size
        while remaining > 0:
            data = self.read_some(min(DISCARD_CHUNK_SIZE, remaining))
            if not data:
                raise ConnectionClosed(
                    f"Connection closed while discarding payload "
                    f"({size - remaining} of {size} bytes)"
                )
            remaining -= len(data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self, how: int = socket.SHUT_RDWR) -> None:
        """Shut down one or both directions of the socket.

        Wakes up a thread blocked on a read of this channel.
        """
        try:
            self._sock.shutdown(how)
        except OSError:
            # Already disconnected
            pass

    def close(self) -> None:
        """Close the channel and the socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self._writer is not None:
            try:
                self._writer.close()
            except OSError as e:
                logger.debug(f"Error flushing channel on close: {e}")
        if self._reader is not None:
            try:
                self._reader.close()
            except OSError as e:
                logger.debug(f"Error closing channel reader: {e}")
        try:
            self._sock.close()
        except OSError as e:
            logger.debug(f"Error closing socket: {e}")

    def _open_reader(self) -> BufferedReader:
        if self._closed or self._reader is None:
            raise ConnectionClosed("Channel is closed")
        return self._reader

    def _open_writer(self) -> BufferedWriter:
        if self._closed or self._writer is None:
            raise ConnectionClosed("Channel is closed")
        return self._writer

    def __enter__(self) -> FramedChannel:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
