"""Server-side command dispatch.

This module provides:
- CommandHandler: executes one parsed command against the shared store and
  writes the response on the session's channel
- format_listing: text body of a LIST response

Command-level failures (invalid name, missing file, local I/O) are answered
with an ERROR response. Connection-level failures propagate to the session.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fileshare.core.errors import CommandError, InvalidName, NotFound, StreamTruncated
from fileshare.core.formatting import format_size
from fileshare.core.protocol import (
    VALID_COMMANDS,
    Command,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    QuitCommand,
    Response,
    ResponseStatus,
    UploadCommand,
    write_response,
)
from fileshare.core.transfer import ProgressLogger, receive_file, send_file
from fileshare.server.storage import validate_name

if TYPE_CHECKING:
    from collections.abc import Callable

    from fileshare.core.channel import FramedChannel
    from fileshare.core.types import FileEntry
    from fileshare.server.storage import FileStore

logger = logging.getLogger(__name__)

GOODBYE_MESSAGE = "Goodbye! Connection closed."
EMPTY_LISTING = "No files available on the server."
LISTING_RULE = "=" * 60


def format_listing(entries: list[FileEntry]) -> str:
    """Render the LIST response body."""
    if not entries:
        return EMPTY_LISTING

    lines = ["Files available on server:", LISTING_RULE]
    total_size = 0
    for entry in entries:
        lines.append(
            f"{entry.name:<30} {format_size(entry.size):>10} {entry.size:>14} bytes"
        )
        total_size += entry.size
    lines.append(LISTING_RULE)
    lines.append(f"Total: {len(entries)} files, {format_size(total_size)}")
    return "\n".join(lines)


class CommandHandler:
    """Executes commands for one connection.

    Usage:
        handler = CommandHandler(channel, store, peer="10.0.0.5:51234")
        keep_going = handler.handle(read_command(channel))
    """

    def __init__(self, channel: FramedChannel, store: FileStore, peer: str = "") -> None:
        self._channel = channel
        self._store = store
        self._prefix = f"[{peer}] " if peer else ""

    def handle(self, command: Command) -> bool:
        """Execute a command and send its response.

        Returns:
            False if the command ends the session (QUIT), True otherwise.

        Raises:
            ConnectionClosed: If the channel fails.
            ProtocolError: If the peer sends a malformed frame.
        """
        if isinstance(command, ListCommand):
            self._respond(self.handle_list)
        elif isinstance(command, UploadCommand):
            self._respond(lambda: self.handle_upload(command))
        elif isinstance(command, DownloadCommand):
            self.handle_download(command)
        elif isinstance(command, DeleteCommand):
            self._respond(lambda: self.handle_delete(command))
        elif isinstance(command, QuitCommand):
            write_response(self._channel, Response.ok(GOODBYE_MESSAGE))
            logger.info(f"{self._prefix}Client disconnected gracefully")
            return False
        else:
            logger.warning(f"{self._prefix}Unknown command: {command.raw!r}")
            write_response(
                self._channel,
                Response.error(f"Unknown command. Available: {VALID_COMMANDS}"),
            )
        return True

    def _respond(self, action: Callable[[], Response]) -> None:
        """Run a single-response command, turning CommandError into ERROR."""
        try:
            response = action()
        except CommandError as e:
            logger.warning(f"{self._prefix}Command failed: {e}")
            response = Response.error(str(e))
        write_response(self._channel, response)

    def handle_list(self) -> Response:
        entries = self._store.list_files()
        logger.info(f"{self._prefix}Listed {len(entries)} files")
        return Response.ok(format_listing(entries))

    def handle_upload(self, command: UploadCommand) -> Response:
        """Receive an upload into staging and move it into the store.

        The payload is always consumed, even for an invalid name, so the next
        command on the stream is read correctly.
        """
        try:
            validate_name(command.name)
        except InvalidName:
            logger.warning(
                f"{self._prefix}Rejected upload with invalid filename "
                f"{command.name!r}, discarding {command.size} bytes"
            )
            self._channel.discard(command.size)
            raise

        logger.info(
            f"{self._prefix}Uploading: {command.name} ({format_size(command.size)})"
        )
        staging = self._store.staging_path(command.name)
        try:
            result = receive_file(
                self._channel,
                staging,
                command.size,
                ProgressLogger("Upload", self._prefix),
            )
        except StreamTruncated:
            logger.error(f"{self._prefix}Upload of {command.name} truncated")
            raise
        entry = self._store.commit(staging, command.name)
        logger.info(
            f"{self._prefix}Upload completed: {entry.name} "
            f"({format_size(entry.size)} in {result.elapsed:.2f}s)"
        )
        return Response.ok(f"uploaded: {entry.name}")

    def handle_download(self, command: DownloadCommand) -> None:
        """Send status, size and payload, or status and reason."""
        try:
            path = self._store.path_for(command.name)
            size = path.stat().st_size
        except OSError:
            reason = str(NotFound(command.name))
        except CommandError as e:
            reason = str(e)
        else:
            reason = ""

        if reason:
            logger.warning(f"{self._prefix}Download refused: {reason}")
            self._channel.write_text(ResponseStatus.ERROR.value)
            self._channel.write_text(reason)
            self._channel.flush()
            return

        logger.info(f"{self._prefix}Downloading: {command.name} ({format_size(size)})")
        self._channel.write_text(ResponseStatus.SUCCESS.value)
        self._channel.write_size(size)
        try:
            result = send_file(
                self._channel,
                path,
                ProgressLogger("Download", self._prefix),
                size=size,
            )
        except CommandError as e:
            # Header already sent: the peer detects the short stream itself
            logger.error(f"{self._prefix}Download error: {e}")
            raise
        logger.info(
            f"{self._prefix}Download completed: {command.name} "
            f"({result.elapsed:.2f}s)"
        )

    def handle_delete(self, command: DeleteCommand) -> Response:
        if not self._store.delete(command.name):
            raise NotFound(command.name)
        logger.info(f"{self._prefix}Deleted file: {command.name}")
        return Response.ok(f"deleted: {command.name}")
