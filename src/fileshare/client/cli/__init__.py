"""Command-line interface for FileShare.

This module provides the main CLI entry point and assembles all commands.

Commands:
- serve: Run a FileShare server
- list: List files on the server
- upload: Upload a file to the server
- download: Download a file from the server
- delete: Delete a file on the server
- shell: Interactive menu-driven session
- config: Manage client configuration
"""

from __future__ import annotations

import click

from fileshare import __version__
from fileshare.client.cli.config import (
    get_client_config,
    get_config_dir,
    get_config_file,
    get_download_folder,
    load_config,
    save_config,
)
from fileshare.client.cli.files import delete, download, list_cmd, upload
from fileshare.client.cli.server import serve
from fileshare.client.cli.settings import config_group
from fileshare.client.cli.shell import shell

__all__ = [
    "cli",
    "get_client_config",
    "get_config_dir",
    "get_config_file",
    "get_download_folder",
    "load_config",
    "main",
    "save_config",
]


@click.group()
@click.version_option(version=__version__, prog_name="fileshare")
def cli() -> None:
    """FileShare - share a folder with clients over TCP."""


# Server command
cli.add_command(serve)

# File commands
cli.add_command(list_cmd)
cli.add_command(upload)
cli.add_command(download)
cli.add_command(delete)
cli.add_command(shell)

# Settings commands
cli.add_command(config_group)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
