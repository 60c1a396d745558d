"""FileShare wire protocol: commands and responses.

Client command frames:
    LIST
    UPLOAD   <name: text> <size: u64> <payload: size bytes>
    DOWNLOAD <name: text>
    DELETE   <name: text>
    QUIT

Server responses:
    one text frame "SUCCESS: <message>" or "ERROR: <message>" for every
    command, except DOWNLOAD which answers with a status text frame
    ("SUCCESS" or "ERROR") followed by either a size frame and the payload,
    or a reason text frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

from fileshare.core.errors import ProtocolError

if TYPE_CHECKING:
    from fileshare.core.channel import FramedChannel


class CommandType(str, Enum):
    """Command words sent by the client."""

    LIST = "LIST"
    UPLOAD = "UPLOAD"
    DOWNLOAD = "DOWNLOAD"
    DELETE = "DELETE"
    QUIT = "QUIT"


VALID_COMMANDS = ", ".join(c.value for c in CommandType)


@dataclass(frozen=True)
class ListCommand:
    """Enumerate files in the shared store."""


@dataclass(frozen=True)
class UploadCommand:
    """Store size payload bytes under name."""

    name: str
    size: int


@dataclass(frozen=True)
class DownloadCommand:
    """Fetch the bytes of a stored file."""

    name: str


@dataclass(frozen=True)
class DeleteCommand:
    """Remove a stored file."""

    name: str


@dataclass(frozen=True)
class QuitCommand:
    """End the session."""


@dataclass(frozen=True)
class UnknownCommand:
    """A command word the server does not recognize."""

    raw: str


Command = Union[
    ListCommand, UploadCommand, DownloadCommand, DeleteCommand, QuitCommand, UnknownCommand
]


def read_command(channel: FramedChannel) -> Command:
    """Read one command, including its parameter frames, from the channel.

    The payload of an UPLOAD is not read here.
    """
    raw = channel.read_text()
    word = raw.strip().upper()

    if word == CommandType.LIST:
        return ListCommand()
    if word == CommandType.UPLOAD:
        name = channel.read_text()
        size = channel.read_size()
        return UploadCommand(name=name, size=size)
    if word == CommandType.DOWNLOAD:
        return DownloadCommand(name=channel.read_text())
    if word == CommandType.DELETE:
        return DeleteCommand(name=channel.read_text())
    if word == CommandType.QUIT:
        return QuitCommand()
    return UnknownCommand(raw=raw)


def write_command(channel: FramedChannel, command: Command) -> None:
    """Write a command and its parameter frames (without payload or flush)."""
    if isinstance(command, ListCommand):
        channel.write_text(CommandType.LIST.value)
    elif isinstance(command, UploadCommand):
        channel.write_text(CommandType.UPLOAD.value)
        channel.write_text(command.name)
        channel.write_size(command.size)
    elif isinstance(command, DownloadCommand):
        channel.write_text(CommandType.DOWNLOAD.value)
        channel.write_text(command.name)
    elif isinstance(command, DeleteCommand):
        channel.write_text(CommandType.DELETE.value)
        channel.write_text(command.name)
    elif isinstance(command, QuitCommand):
        channel.write_text(CommandType.QUIT.value)
    else:
        channel.write_text(command.raw)


class ResponseStatus(str, Enum):
    """Status tag leading every response."""

    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Response:
    """A textual response to one command."""

    status: ResponseStatus
    message: str

    @classmethod
    def ok(cls, message: str) -> Response:
        return cls(ResponseStatus.SUCCESS, message)

    @classmethod
    def error(cls, message: str) -> Response:
        return cls(ResponseStatus.ERROR, message)

    @property
    def is_ok(self) -> bool:
        return self.status == ResponseStatus.SUCCESS

    def encode(self) -> str:
        """Render as a single text frame body."""
        return f"{self.status.value}: {self.message}"

    @classmethod
    def decode(cls, text: str) -> Response:
        """Parse a text frame body produced by encode().

        Raises:
            ProtocolError: If the frame does not start with a status tag.
        """
        tag, sep, message = text.partition(": ")
        if not sep:
            tag, message = text, ""
        try:
            status = ResponseStatus(tag)
        except ValueError as e:
            raise ProtocolError(f"Response has no status tag: {text[:40]!r}") from e
        return cls(status, message)


def write_response(channel: FramedChannel, response: Response) -> None:
    """Send one textual response and flush."""
    channel.write_text(response.encode())
    channel.flush()


def read_response(channel: FramedChannel) -> Response:
    """Read one textual response."""
    return Response.decode(channel.read_text())
