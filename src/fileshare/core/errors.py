"""Error taxonomy shared by the FileShare client and server.

Connection-level errors (ConnectionClosed, ProtocolError) end a session.
Command-level errors (CommandError and subclasses) are reported to the peer
as an ERROR response and the session keeps going.
"""

from __future__ import annotations


class FileShareError(Exception):
    """Base exception for FileShare errors."""


class ConnectionClosed(FileShareError):
    """The peer closed the stream or the network connection was severed."""


class ProtocolError(FileShareError):
    """A frame received from the peer is malformed."""


class CommandError(FileShareError):
    """A single command failed; the session can continue."""


class InvalidName(CommandError):
    """A file name violates the flat namespace rules."""

    def __init__(self, name: str) -> None:
        super().__init__("Invalid filename")
        self.name = name


class NotFound(CommandError):
    """The named file does not exist in the store."""

    def __init__(self, name: str) -> None:
        super().__init__(f"not found: {name}")
        self.name = name


class LocalIOError(CommandError):
    """Reading or writing a local file failed."""


class LocalReadError(LocalIOError):
    """The source file became unreadable during a transfer."""


class StreamTruncated(LocalIOError):
    """The channel closed before the declared number of bytes arrived."""

    def __init__(self, received: int, expected: int) -> None:
        super().__init__(
            f"Unexpected end of stream: received {received} of {expected} bytes"
        )
        self.received = received
        self.expected = expected
