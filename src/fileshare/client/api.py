"""Protocol client for a FileShare server.

This module provides:
- FileShareClient: connects to a server and issues LIST, UPLOAD, DOWNLOAD,
  DELETE and QUIT over one connection
- ClientError / ServerResponseError: client-side failures
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from fileshare.core.channel import FramedChannel
from fileshare.core.config import ClientConfig
from fileshare.core.errors import (
    ConnectionClosed,
    FileShareError,
    LocalIOError,
    ProtocolError,
    StreamTruncated,
)
from fileshare.core.protocol import (
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    QuitCommand,
    ResponseStatus,
    UploadCommand,
    read_response,
    write_command,
)
from fileshare.core.transfer import receive_file, send_file

if TYPE_CHECKING:
    from fileshare.core.transfer import ProgressCallback, TransferResult

logger = logging.getLogger(__name__)


class ClientError(FileShareError):
    """A request was refused locally, before anything was sent."""


class ServerResponseError(FileShareError):
    """The server answered with an ERROR response.

    The message is the server's reason, verbatim.
    """


@dataclass
class DownloadResult:
    """Result of a file download."""

    name: str
    local_path: Path
    transfer: TransferResult


class FileShareClient:
    """Client for one FileShare server connection.

    Usage:
        with FileShareClient(ClientConfig(host="localhost", port=8080)) as client:
            print(client.list_files())
            client.upload("report.pdf")
    """

    def __init__(self, config: ClientConfig) -> None:
        """Initialize the client (does not connect).

        Args:
            config: Server address, download folder and timeout.
        """
        self._config = config
        self._channel: FramedChannel | None = None

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._channel is not None and not self._channel.closed

    def connect(self) -> None:
        """Open the connection.

        Raises:
            ConnectionClosed: If the server cannot be reached.
        """
        if self.is_connected:
            return
        logger.debug(f"Connecting to {self._config.address}")
        self._channel = FramedChannel.connect(
            self._config.host, self._config.port, timeout=self._config.timeout
        )

    def close(self) -> None:
        """Close the connection without sending QUIT."""
        if self._channel is not None:
            self._channel.close()
            self._channel = None

    def __enter__(self) -> FileShareClient:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.is_connected:
            try:
                self.quit()
            except FileShareError as e:
                logger.debug(f"QUIT failed: {e}")
        self.close()

    def _require_channel(self) -> FramedChannel:
        if self._channel is None or self._channel.closed:
            raise ConnectionClosed("Not connected")
        return self._channel

    def _connection_lost(self) -> None:
        """Drop the channel after a connection-level failure."""
        self.close()

    def list_files(self) -> str:
        """Get the server's file listing."""
        channel = self._require_channel()
        try:
            write_command(channel, ListCommand())
            channel.flush()
            return self._read_ok(channel)
        except (ConnectionClosed, ProtocolError):
            self._connection_lost()
            raise

    def upload(
        self,
        path: Path | str,
        name: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Upload a local file.

        Args:
            path: Local file to upload.
            name: Name to store it under (defaults to the file's base name).
            on_progress: Optional callback (bytes_sent, total, elapsed).

        Returns:
            The server's confirmation message.

        Raises:
            ClientError: If the path is missing, not a file, or empty.
            ServerResponseError: If the server rejects the upload.
            LocalReadError: If the file cannot be read mid-transfer; the
                connection is closed since the server awaits the missing bytes.
        """
        path = Path(path)
        if not path.exists():
            raise ClientError(f"File not found: {path}")
        if not path.is_file():
            raise ClientError(f"Path is not a file: {path}")
        size = path.stat().st_size
        if size == 0:
            raise ClientError("Cannot upload empty file.")

        channel = self._require_channel()
        command = UploadCommand(name=name or path.name, size=size)
        logger.info(f"Uploading {command.name} ({size} bytes)")
        try:
            write_command(channel, command)
            send_file(channel, path, on_progress, size=size)
            return self._read_ok(channel)
        except (ConnectionClosed, ProtocolError, LocalIOError):
            self._connection_lost()
            raise

    def download(
        self,
        name: str,
        dest_dir: Path | str | None = None,
        on_progress: ProgressCallback | None = None,
        overwrite: bool = False,
    ) -> DownloadResult:
        """Download a file into dest_dir.

        The bytes are received into a temporary file next to the destination
        and moved into place only when complete.

        Args:
            name: Name of the file on the server.
            dest_dir: Target folder (defaults to the configured download folder).
            on_progress: Optional callback (bytes_received, total, elapsed).
            overwrite: Replace an existing local file.

        Raises:
            ClientError: If the local file exists and overwrite is False.
            ServerResponseError: If the server refuses (e.g. file not found).
            StreamTruncated: If the connection drops mid-transfer.
        """
        dest_dir = Path(dest_dir) if dest_dir is not None else Path(self._config.download_folder)
        dest_dir.mkdir(parents=True, exist_ok=True)
        local_path = dest_dir / Path(name).name
        if local_path.exists() and not overwrite:
            raise ClientError(f"File already exists locally: {local_path}")

        channel = self._require_channel()
        try:
            write_command(channel, DownloadCommand(name=name))
            channel.flush()

            status = channel.read_text()
            if status == ResponseStatus.ERROR:
                raise ServerResponseError(channel.read_text())
            if status != ResponseStatus.SUCCESS:
                raise ProtocolError(f"Unexpected download status: {status[:40]!r}")

            size = channel.read_size()
            partial = dest_dir / f".{local_path.name}.{uuid.uuid4().hex[:8]}.part"
            transfer = receive_file(channel, partial, size, on_progress)
        except (ConnectionClosed, ProtocolError, StreamTruncated):
            self._connection_lost()
            raise

        try:
            os.replace(partial, local_path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise LocalIOError(f"Cannot save {local_path}: {e.strerror or e}") from e
        logger.info(f"Downloaded {name} to {local_path}")
        return DownloadResult(name=name, local_path=local_path, transfer=transfer)

    def delete(self, name: str) -> str:
        """Delete a file on the server."""
        channel = self._require_channel()
        try:
            write_command(channel, DeleteCommand(name=name))
            channel.flush()
            return self._read_ok(channel)
        except (ConnectionClosed, ProtocolError):
            self._connection_lost()
            raise

    def quit(self) -> str:
        """Send QUIT, read the farewell and close the connection."""
        channel = self._require_channel()
        try:
            write_command(channel, QuitCommand())
            channel.flush()
            return read_response(channel).message
        finally:
            self.close()

    def _read_ok(self, channel: FramedChannel) -> str:
        response = read_response(channel)
        if not response.is_ok:
            raise ServerResponseError(response.message)
        return response.message
