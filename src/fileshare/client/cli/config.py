"""Configuration utilities for FileShare CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from fileshare.core.config import DEFAULT_PORT, ClientConfig


def get_config_dir() -> Path:
    """Get the configuration directory for FileShare.

    Returns:
        Path to ~/.fileshare or the FILESHARE_CONFIG_DIR override.
    """
    override = os.environ.get("FILESHARE_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".fileshare"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_download_folder() -> Path:
    """Get the download folder. It is created on the first download.

    Returns:
        Path to the configured folder, or ./downloads.
    """
    config = load_config()
    return Path(config.get("download_folder") or "downloads").expanduser()


def get_client_config(host: str | None = None, port: int | None = None) -> ClientConfig:
    """Build the client configuration.

    Explicit arguments win over the saved configuration.
    """
    config = load_config()
    timeout = config.get("timeout")
    return ClientConfig(
        host=host or config.get("host") or "localhost",
        port=port or int(config.get("port") or DEFAULT_PORT),
        download_folder=get_download_folder(),
        timeout=float(timeout) if timeout else None,
    )
