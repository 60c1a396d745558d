"""Core module - Shared framing, protocol, transfer engine and models."""

from fileshare.core.channel import FramedChannel
from fileshare.core.config import ClientConfig, ServerConfig
from fileshare.core.errors import (
    CommandError,
    ConnectionClosed,
    FileShareError,
    InvalidName,
    LocalIOError,
    LocalReadError,
    NotFound,
    ProtocolError,
    StreamTruncated,
)
from fileshare.core.formatting import format_rate, format_size
from fileshare.core.protocol import (
    Command,
    CommandType,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    QuitCommand,
    Response,
    ResponseStatus,
    UnknownCommand,
    UploadCommand,
)
from fileshare.core.transfer import (
    CHUNK_SIZE,
    ProgressCallback,
    ProgressLogger,
    TransferResult,
    receive_file,
    send_file,
)
from fileshare.core.types import (
    FileEntry,
    SessionState,
    TransferDescriptor,
    TransferDirection,
)

__all__ = [
    # Channel
    "FramedChannel",
    # Config
    "ClientConfig",
    "ServerConfig",
    # Errors
    "CommandError",
    "ConnectionClosed",
    "FileShareError",
    "InvalidName",
    "LocalIOError",
    "LocalReadError",
    "NotFound",
    "ProtocolError",
    "StreamTruncated",
    # Formatting
    "format_rate",
    "format_size",
    # Protocol
    "Command",
    "CommandType",
    "DeleteCommand",
    "DownloadCommand",
    "ListCommand",
    "QuitCommand",
    "Response",
    "ResponseStatus",
    "UnknownCommand",
    "UploadCommand",
    # Transfer
    "CHUNK_SIZE",
    "ProgressCallback",
    "ProgressLogger",
    "TransferResult",
    "receive_file",
    "send_file",
    # Types
    "FileEntry",
    "SessionState",
    "TransferDescriptor",
    "TransferDirection",
]
