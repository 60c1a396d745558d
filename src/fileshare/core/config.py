"""Shared configuration classes for fileshare.

This module defines configuration classes used by both client and server components.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PORT = 8080
DEFAULT_MAX_CLIENTS = 10
DEFAULT_GRACE_PERIOD = 5.0


@dataclass
class ServerConfig:
    """Configuration for running a FileShare server.

    Attributes:
        host: Interface to bind (default all interfaces).
        port: TCP port to listen on. 0 picks a free port.
        shared_folder: Directory exposed to clients.
        max_clients: Number of sessions served concurrently.
        read_timeout: Optional socket read timeout in seconds.
        grace_period: Seconds to wait for sessions on shutdown.
        log_path: Server log file.
    """

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    shared_folder: Path | str = "shared_files"
    max_clients: int = DEFAULT_MAX_CLIENTS
    read_timeout: float | None = None
    grace_period: float = DEFAULT_GRACE_PERIOD
    log_path: Path | str = "fileshare-server.log"

    def __post_init__(self) -> None:
        """Normalize paths and validate numeric settings."""
        self.shared_folder = Path(self.shared_folder)
        self.log_path = Path(self.log_path)
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}")
        if self.max_clients < 1:
            raise ValueError(f"max_clients must be positive, got {self.max_clients}")
        if self.read_timeout is not None and self.read_timeout <= 0:
            self.read_timeout = None

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build configuration from FILESHARE_* environment variables."""
        read_timeout = os.environ.get("FILESHARE_READ_TIMEOUT")
        return cls(
            host=os.environ.get("FILESHARE_HOST", "0.0.0.0"),
            port=int(os.environ.get("FILESHARE_PORT", str(DEFAULT_PORT))),
            shared_folder=os.environ.get("FILESHARE_SHARED_FOLDER", "shared_files"),
            max_clients=int(
                os.environ.get("FILESHARE_MAX_CLIENTS", str(DEFAULT_MAX_CLIENTS))
            ),
            read_timeout=float(read_timeout) if read_timeout else None,
            grace_period=float(
                os.environ.get("FILESHARE_GRACE_PERIOD", str(DEFAULT_GRACE_PERIOD))
            ),
            log_path=os.environ.get("FILESHARE_LOG_PATH", "fileshare-server.log"),
        )


@dataclass
class ClientConfig:
    """Configuration for connecting to a FileShare server.

    Attributes:
        host: Server host name or address.
        port: Server port.
        download_folder: Where downloaded files are saved.
        timeout: Optional connect/read timeout in seconds.
    """

    host: str = "localhost"
    port: int = DEFAULT_PORT
    download_folder: Path | str = "downloads"
    timeout: float | None = None

    def __post_init__(self) -> None:
        """Normalize the download folder."""
        self.download_folder = Path(self.download_folder).expanduser()

    @property
    def address(self) -> str:
        """Return "host:port" for display."""
        return f"{self.host}:{self.port}"
