"""Tests for the transfer engine."""

import logging
import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from fileshare.core.channel import FramedChannel
from fileshare.core.errors import LocalIOError, LocalReadError, StreamTruncated
from fileshare.core.transfer import (
    CHUNK_SIZE,
    ProgressLogger,
    TransferResult,
    receive_file,
    send_file,
)
from fileshare.core.types import TransferDescriptor, TransferDirection


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A 10,000 byte file with non-repeating content."""
    path = tmp_path / "report.pdf"
    path.write_bytes(os.urandom(10_000))
    return path


class FullDiskFile:
    """File stand-in whose writes fail as if the disk were full."""

    def __init__(self, path: Path, mode: str) -> None:
        self._file = open(path, mode)

    def write(self, data: bytes) -> int:
        raise OSError(28, "No space left on device")

    def __enter__(self) -> "FullDiskFile":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._file.close()


class TestSendFile:
    """Tests for send_file."""

    def test_sends_whole_file(
        self, channel_pair: tuple[FramedChannel, FramedChannel], source_file: Path
    ) -> None:
        """All bytes should arrive in order."""
        left, right = channel_pair

        result = send_file(left, source_file)

        assert result.bytes_transferred == 10_000
        assert result.descriptor.direction == TransferDirection.OUTBOUND
        assert right.read_exactly(10_000) == source_file.read_bytes()

    def test_progress_reports_each_chunk(
        self, channel_pair: tuple[FramedChannel, FramedChannel], source_file: Path
    ) -> None:
        """Progress should be monotonic and end at the total."""
        left, right = channel_pair
        progress = MagicMock()

        send_file(left, source_file, progress)
        right.read_exactly(10_000)

        done_values = [call.args[0] for call in progress.call_args_list]
        assert done_values == sorted(done_values)
        assert done_values[0] == CHUNK_SIZE
        assert done_values[-1] == 10_000
        assert all(call.args[1] == 10_000 for call in progress.call_args_list)

    def test_failing_progress_callback_is_ignored(
        self, channel_pair: tuple[FramedChannel, FramedChannel], source_file: Path
    ) -> None:
        """A broken callback must not abort the transfer."""
        left, right = channel_pair
        progress = MagicMock(side_effect=RuntimeError("display gone"))

        result = send_file(left, source_file, progress)

        assert result.bytes_transferred == 10_000
        assert right.read_exactly(10_000) == source_file.read_bytes()

    def test_missing_file(
        self, channel_pair: tuple[FramedChannel, FramedChannel], tmp_path: Path
    ) -> None:
        """An unreadable source raises LocalReadError before sending anything."""
        left, _ = channel_pair
        with pytest.raises(LocalReadError, match="Cannot open"):
            send_file(left, tmp_path / "missing.bin")
        assert left.bytes_written == 0

    def test_file_shorter_than_announced(
        self, channel_pair: tuple[FramedChannel, FramedChannel], source_file: Path
    ) -> None:
        """A file that shrank below the announced size raises LocalReadError."""
        left, _ = channel_pair
        with pytest.raises(LocalReadError, match="shrank"):
            send_file(left, source_file, size=20_000)

    def test_explicit_size_limits_bytes_sent(
        self, channel_pair: tuple[FramedChannel, FramedChannel], source_file: Path
    ) -> None:
        """Only the announced number of bytes is sent."""
        left, right = channel_pair
        result = send_file(left, source_file, size=100)
        assert result.bytes_transferred == 100
        assert right.read_exactly(100) == source_file.read_bytes()[:100]


class TestReceiveFile:
    """Tests for receive_file."""

    def test_receives_exact_bytes(
        self, channel_pair: tuple[FramedChannel, FramedChannel], tmp_path: Path
    ) -> None:
        """The destination should hold exactly the payload."""
        left, right = channel_pair
        payload = os.urandom(10_000)
        left.write_bytes(payload)
        left.write_text("after")
        left.flush()
        dest = tmp_path / "out.bin"

        result = receive_file(right, dest, 10_000)

        assert dest.read_bytes() == payload
        assert result.bytes_transferred == 10_000
        assert result.descriptor == TransferDescriptor("out.bin", 10_000, TransferDirection.INBOUND)
        # Bytes after the payload are left for the next frame
        assert right.read_text() == "after"

    def test_zero_bytes(
        self, channel_pair: tuple[FramedChannel, FramedChannel], tmp_path: Path
    ) -> None:
        """A zero-length transfer creates an empty file."""
        _, right = channel_pair
        dest = tmp_path / "empty.bin"
        receive_file(right, dest, 0)
        assert dest.read_bytes() == b""

    def test_truncated_stream_leaves_no_file(
        self, channel_pair: tuple[FramedChannel, FramedChannel], tmp_path: Path
    ) -> None:
        """If the peer disconnects early, no partial file remains."""
        left, right = channel_pair
        left.write_bytes(b"x" * 3000)
        left.close()
        dest = tmp_path / "partial.bin"

        with pytest.raises(StreamTruncated, match="received 3000 of 10000 bytes") as exc_info:
            receive_file(right, dest, 10_000)

        assert exc_info.value.received == 3000
        assert not dest.exists()

    def test_existing_destination_drains_payload(
        self, channel_pair: tuple[FramedChannel, FramedChannel], tmp_path: Path
    ) -> None:
        """An uncreatable destination still consumes the payload."""
        left, right = channel_pair
        dest = tmp_path / "taken.bin"
        dest.write_bytes(b"original")
        left.write_bytes(b"y" * 500)
        left.write_text("NEXT")
        left.flush()

        with pytest.raises(LocalIOError, match="Cannot create"):
            receive_file(right, dest, 500)

        assert dest.read_bytes() == b"original"
        assert right.read_text() == "NEXT"

    def test_write_failure_drains_and_cleans_up(
        self, channel_pair: tuple[FramedChannel, FramedChannel], tmp_path: Path
    ) -> None:
        """A disk error mid-transfer drains the rest and removes the file."""
        left, right = channel_pair
        left.write_bytes(b"z" * 10_000)
        left.write_text("NEXT")
        left.flush()
        dest = tmp_path / "full-disk.bin"

        with patch("fileshare.core.transfer.open", FullDiskFile, create=True):
            with pytest.raises(LocalIOError, match="No space left"):
                receive_file(right, dest, 10_000)

        assert not dest.exists()
        assert right.read_text() == "NEXT"


class TestTransferResult:
    """Tests for TransferResult."""

    def test_throughput(self) -> None:
        """Throughput is bytes over elapsed seconds."""
        descriptor = TransferDescriptor("a", 1000, TransferDirection.INBOUND)
        assert TransferResult(descriptor, 1000, 2.0).throughput == 500.0

    def test_throughput_without_elapsed_time(self) -> None:
        """A zero elapsed time should not divide by zero."""
        descriptor = TransferDescriptor("a", 10, TransferDirection.INBOUND)
        assert TransferResult(descriptor, 10, 0.0).throughput == 10.0


class TestProgressLogger:
    """Tests for ProgressLogger."""

    def test_logs_completion(self, caplog: pytest.LogCaptureFixture) -> None:
        """The final report is always logged."""
        progress = ProgressLogger("Upload", "[peer] ", interval=3600)
        with caplog.at_level(logging.INFO, logger="fileshare"):
            progress(500, 1000, 0.1)
            progress(1000, 1000, 0.2)

        messages = [r.getMessage() for r in caplog.records]
        assert len(messages) == 1
        assert messages[0].startswith("[peer] Upload progress: 100%")

    def test_logs_at_interval(self, caplog: pytest.LogCaptureFixture) -> None:
        """Intermediate reports are logged once the interval has passed."""
        progress = ProgressLogger("Download", interval=0)
        with caplog.at_level(logging.INFO, logger="fileshare"):
            progress(250, 1000, 0.1)
        assert "Download progress: 25%" in caplog.text
