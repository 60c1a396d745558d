"""Transfer engine: stream file contents across a framed channel.

This module provides:
- send_file: stream a local file into the channel in fixed-size chunks
- receive_file: write exactly N bytes from the channel into a new local file
- TransferResult: byte count, elapsed time and throughput of a transfer
- ProgressLogger: progress callback that logs at a bounded rate

A transfer either completes or leaves no artifact: receive_file removes the
partially written destination before any failure propagates.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from fileshare.core.errors import (
    ConnectionClosed,
    LocalIOError,
    LocalReadError,
    StreamTruncated,
)
from fileshare.core.formatting import format_rate, format_size
from fileshare.core.types import TransferDescriptor, TransferDirection

if TYPE_CHECKING:
    from fileshare.core.channel import FramedChannel

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096

# Callback signature: (bytes_done, total_bytes, elapsed_seconds)
ProgressCallback = Callable[[int, int, float], None]


@dataclass
class TransferResult:
    """Outcome of a completed transfer."""

    descriptor: TransferDescriptor
    bytes_transferred: int
    elapsed: float

    @property
    def throughput(self) -> float:
        """Average speed in bytes/sec."""
        if self.elapsed <= 0:
            return float(self.bytes_transferred)
        return self.bytes_transferred / self.elapsed


def _report(
    callback: ProgressCallback | None, done: int, total: int, started: float
) -> None:
    """Invoke a progress callback without letting it affect the transfer."""
    if callback is None:
        return
    try:
        callback(done, total, time.monotonic() - started)
    except Exception:
        logger.exception("Progress callback failed")


def send_file(
    channel: FramedChannel,
    path: Path | str,
    report_progress: ProgressCallback | None = None,
    size: int | None = None,
) -> TransferResult:
    """Stream a local file into the channel.

    The caller is responsible for announcing the size to the peer beforehand.

    Args:
        channel: Channel to write the payload to.
        path: Local file to send.
        report_progress: Optional callback invoked after each chunk.
        size: Number of bytes to send, normally the size already announced.
            Defaults to the size of the file when it is opened.

    Returns:
        TransferResult for the outbound transfer.

    Raises:
        LocalReadError: If the file cannot be read or shrinks mid-transfer.
        ConnectionClosed: If the channel fails.
    """
    path = Path(path)
    started = time.monotonic()
    sent = 0

    try:
        f = open(path, "rb")
    except OSError as e:
        raise LocalReadError(f"Cannot open {path.name}: {e.strerror or e}") from e

    with f:
        total = os.fstat(f.fileno()).st_size if size is None else size
        descriptor = TransferDescriptor(path.name, total, TransferDirection.OUTBOUND)

        while sent < total:
            try:
                chunk = f.read(min(CHUNK_SIZE, total - sent))
            except OSError as e:
                raise LocalReadError(
                    f"Read failed for {path.name} after {sent} of {total} bytes: "
                    f"{e.strerror or e}"
                ) from e
            if not chunk:
                raise LocalReadError(
                    f"{path.name} shrank during transfer: sent {sent} of {total} bytes"
                )

            channel.write_bytes(chunk)
            sent += len(chunk)
            _report(report_progress, sent, total, started)

        channel.flush()

    return TransferResult(descriptor, sent, time.monotonic() - started)


def receive_file(
    channel: FramedChannel,
    dest_path: Path | str,
    total_bytes: int,
    report_progress: ProgressCallback | None = None,
) -> TransferResult:
    """Receive exactly total_bytes from the channel into a new file.

    The destination is created exclusively and must not exist yet. If writing
    to disk fails, the rest of the payload is still drained from the channel so
    that the next frame on the stream is read correctly.

    Args:
        channel: Channel to read the payload from.
        dest_path: Destination file path.
        total_bytes: Number of payload bytes announced by the peer.
        report_progress: Optional callback invoked after each chunk.

    Returns:
        TransferResult for the inbound transfer.

    Raises:
        StreamTruncated: If the channel closes before total_bytes arrived.
        LocalIOError: If the destination cannot be created or written.
        ConnectionClosed: If the channel fails for another reason.
    """
    dest_path = Path(dest_path)
    descriptor = TransferDescriptor(dest_path.name, total_bytes, TransferDirection.INBOUND)
    started = time.monotonic()
    received = 0

    try:
        f = open(dest_path, "xb")
    except OSError as e:
        channel.discard(total_bytes)
        raise LocalIOError(
            f"Cannot create {dest_path.name}: {e.strerror or e}"
        ) from e

    try:
        with f:
            while received < total_bytes:
                try:
                    chunk = channel.read_some(min(CHUNK_SIZE, total_bytes - received))
                except ConnectionClosed as e:
                    raise StreamTruncated(received, total_bytes) from e
                if not chunk:
                    raise StreamTruncated(received, total_bytes)

                try:
                    f.write(chunk)
                except OSError as e:
                    received += len(chunk)
                    channel.discard(total_bytes - received)
                    raise LocalIOError(
                        f"Write failed for {dest_path.name}: {e.strerror or e}"
                    ) from e

                received += len(chunk)
                _report(report_progress, received, total_bytes, started)
    except BaseException:
        _remove_partial(dest_path)
        raise

    return TransferResult(descriptor, received, time.monotonic() - started)


def _remove_partial(path: Path) -> None:
    """Delete a partially written file."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Could not remove partial file {path}: {e}")


class ProgressLogger:
    """Progress callback that logs through a logger at most once per interval.

    Usage:
        send_file(channel, path, ProgressLogger("Download", "[1.2.3.4:5] "))
    """

    def __init__(
        self,
        label: str,
        prefix: str = "",
        interval: float = 1.0,
        log: logging.Logger | None = None,
    ) -> None:
        self._label = label
        self._prefix = prefix
        self._interval = interval
        self._log = log or logger
        self._last_logged = time.monotonic()

    def __call__(self, done: int, total: int, elapsed: float) -> None:
        now = time.monotonic()
        if done < total and now - self._last_logged < self._interval:
            return
        self._last_logged = now
        percent = 100 if total == 0 else int(done * 100 / total)
        rate = done / elapsed if elapsed > 0 else 0.0
        self._log.info(
            f"{self._prefix}{self._label} progress: {percent}% "
            f"({format_size(done)}/{format_size(total)} @ {format_rate(rate)})"
        )
