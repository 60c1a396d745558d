"""Tests for configuration classes and formatting helpers."""

from pathlib import Path

import pytest

from fileshare.core.config import DEFAULT_PORT, ClientConfig, ServerConfig
from fileshare.core.formatting import format_rate, format_size


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self) -> None:
        """Should use the documented defaults."""
        config = ServerConfig()
        assert config.host == "0.0.0.0"
        assert config.port == DEFAULT_PORT == 8080
        assert config.shared_folder == Path("shared_files")
        assert config.max_clients == 10
        assert config.read_timeout is None
        assert config.grace_period == 5.0

    def test_paths_are_normalized(self) -> None:
        """String paths should become Path objects."""
        config = ServerConfig(shared_folder="/srv/share", log_path="server.log")
        assert config.shared_folder == Path("/srv/share")
        assert config.log_path == Path("server.log")

    def test_port_zero_allowed(self) -> None:
        """Port 0 asks the OS for a free port."""
        assert ServerConfig(port=0).port == 0

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_invalid_port_rejected(self, port: int) -> None:
        """Out-of-range ports should raise ValueError."""
        with pytest.raises(ValueError, match="Invalid port"):
            ServerConfig(port=port)

    def test_max_clients_must_be_positive(self) -> None:
        """A pool needs at least one worker."""
        with pytest.raises(ValueError, match="max_clients"):
            ServerConfig(max_clients=0)

    def test_non_positive_timeout_disables_it(self) -> None:
        """A zero read timeout means no timeout."""
        assert ServerConfig(read_timeout=0).read_timeout is None

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """from_env should read FILESHARE_* variables."""
        monkeypatch.setenv("FILESHARE_HOST", "127.0.0.1")
        monkeypatch.setenv("FILESHARE_PORT", "9000")
        monkeypatch.setenv("FILESHARE_SHARED_FOLDER", "/tmp/share")
        monkeypatch.setenv("FILESHARE_MAX_CLIENTS", "3")
        monkeypatch.setenv("FILESHARE_READ_TIMEOUT", "30")
        monkeypatch.setenv("FILESHARE_GRACE_PERIOD", "1.5")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.shared_folder == Path("/tmp/share")
        assert config.max_clients == 3
        assert config.read_timeout == 30.0
        assert config.grace_period == 1.5

    def test_from_env_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unset variables should fall back to defaults."""
        for var in ("FILESHARE_HOST", "FILESHARE_PORT", "FILESHARE_READ_TIMEOUT"):
            monkeypatch.delenv(var, raising=False)
        config = ServerConfig.from_env()
        assert config.port == DEFAULT_PORT
        assert config.read_timeout is None


class TestClientConfig:
    """Tests for ClientConfig."""

    def test_defaults(self) -> None:
        """Should connect to localhost:8080 by default."""
        config = ClientConfig()
        assert config.host == "localhost"
        assert config.port == 8080
        assert config.download_folder == Path("downloads")

    def test_address(self) -> None:
        """address should render host:port."""
        assert ClientConfig(host="files.local", port=9000).address == "files.local:9000"

    def test_download_folder_expands_user(self) -> None:
        """A ~ in the download folder should be expanded."""
        config = ClientConfig(download_folder="~/Downloads")
        assert "~" not in str(config.download_folder)


class TestFormatting:
    """Tests for size and rate formatting."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 B"),
            (512, "512 B"),
            (1023, "1023 B"),
            (1024, "1.0 KB"),
            (10_000, "9.8 KB"),
            (1536 * 1024, "1.5 MB"),
            (2 * 1024**3, "2.00 GB"),
        ],
    )
    def test_format_size(self, size: int, expected: str) -> None:
        """format_size should pick the largest fitting unit."""
        assert format_size(size) == expected

    def test_format_rate(self) -> None:
        """format_rate should append /s."""
        assert format_rate(1536 * 1024) == "1.5 MB/s"
        assert format_rate(100.7) == "100 B/s"
