"""Client settings commands for FileShare CLI.

Commands:
- config show: Display the saved client configuration
- config set-server: Save the default server address
- config set-download-folder: Save the download folder
"""

from __future__ import annotations

from pathlib import Path

import click

from fileshare.client.cli import config as cli_config
from fileshare.core.config import DEFAULT_PORT


@click.group("config")
def config_group() -> None:
    """Manage client configuration."""


@config_group.command("show")
def show() -> None:
    """Display the client configuration."""
    config = cli_config.load_config()
    click.echo(f"Config file:     {cli_config.get_config_file()}")
    click.echo(f"Server host:     {config.get('host', 'localhost')}")
    click.echo(f"Server port:     {config.get('port', DEFAULT_PORT)}")
    click.echo(f"Download folder: {config.get('download_folder', 'downloads')}")


@config_group.command("set-server")
@click.argument("host")
@click.option(
    "--port",
    "-p",
    type=click.IntRange(1, 65535),
    default=DEFAULT_PORT,
    show_default=True,
)
def set_server(host: str, port: int) -> None:
    """Save the default server address."""
    config = cli_config.load_config()
    config["host"] = host
    config["port"] = port
    cli_config.save_config(config)
    click.echo(f"Default server set to {host}:{port}")


@config_group.command("set-download-folder")
@click.argument("folder", type=click.Path(file_okay=False, path_type=Path))
def set_download_folder(folder: Path) -> None:
    """Save the folder downloads are written to."""
    folder = folder.expanduser().absolute()
    config = cli_config.load_config()
    config["download_folder"] = str(folder)
    cli_config.save_config(config)
    click.echo(f"Download folder set to {folder}")
