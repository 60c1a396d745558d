"""Server command for FileShare CLI.

Commands:
- serve: Run a FileShare server in the foreground
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path

import click

from fileshare.core.config import ServerConfig


@click.command()
@click.option(
    "--host",
    default=None,
    help="Interface to bind (default: FILESHARE_HOST or 0.0.0.0).",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to listen on (default: FILESHARE_PORT or 8080).",
)
@click.option(
    "--shared-folder",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Folder to share (default: FILESHARE_SHARED_FOLDER or ./shared_files).",
)
@click.option("--max-clients", type=int, default=None, help="Maximum concurrent sessions.")
@click.option(
    "--read-timeout",
    type=float,
    default=None,
    help="Idle timeout per connection, in seconds.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Log file path (default: FILESHARE_LOG_PATH or fileshare-server.log).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def serve(
    host: str | None,
    port: int | None,
    shared_folder: Path | None,
    max_clients: int | None,
    read_timeout: float | None,
    log_file: Path | None,
    verbose: bool,
) -> None:
    """Run a FileShare server until interrupted.

    Examples:

        fileshare serve

        fileshare serve --port 9000 --shared-folder /srv/share
    """
    from fileshare.server.app import run_server, setup_logging

    overrides = {
        "host": host,
        "port": port,
        "shared_folder": shared_folder,
        "max_clients": max_clients,
        "read_timeout": read_timeout,
        "log_path": log_file,
    }
    try:
        config = dataclasses.replace(
            ServerConfig.from_env(),
            **{key: value for key, value in overrides.items() if value is not None},
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    setup_logging(Path(config.log_path), logging.DEBUG if verbose else logging.INFO)
    try:
        run_server(config)
    except OSError as e:
        click.echo(f"Error: Could not start server: {e}", err=True)
        sys.exit(1)
