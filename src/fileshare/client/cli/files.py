"""File commands for FileShare CLI.

Commands:
- list: List files available on the server
- upload: Upload a local file
- download: Download a file into the download folder
- delete: Delete a file on the server
"""

from __future__ import annotations

from pathlib import Path

import click

from fileshare.client.cli.common import ProgressBar, open_client, server_options
from fileshare.core.formatting import format_rate, format_size


@click.command("list")
@server_options
def list_cmd(host: str | None, port: int | None) -> None:
    """List files available on the server."""
    with open_client(host, port) as client:
        click.echo(client.list_files())


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--name", "-n", default=None, help="Store the file under this name.")
@click.option("--no-progress", is_flag=True, help="Do not show a progress bar.")
@server_options
def upload(
    path: Path,
    name: str | None,
    no_progress: bool,
    host: str | None,
    port: int | None,
) -> None:
    """Upload a local file to the server.

    Examples:

        fileshare upload report.pdf

        fileshare upload ./build/out.bin --name release.bin
    """
    with open_client(host, port) as client:
        with ProgressBar(f"Uploading {name or path.name}", enabled=not no_progress) as bar:
            message = client.upload(path, name=name, on_progress=bar)
        click.echo(f"Server response: {message}")


@click.command()
@click.argument("name")
@click.option(
    "--dest",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Target folder (default: configured download folder).",
)
@click.option("--overwrite", is_flag=True, help="Replace an existing local file.")
@click.option("--no-progress", is_flag=True, help="Do not show a progress bar.")
@server_options
def download(
    name: str,
    dest: Path | None,
    overwrite: bool,
    no_progress: bool,
    host: str | None,
    port: int | None,
) -> None:
    """Download a file from the server."""
    with open_client(host, port) as client:
        with ProgressBar(f"Downloading {name}", enabled=not no_progress) as bar:
            result = client.download(name, dest_dir=dest, on_progress=bar, overwrite=overwrite)
        transfer = result.transfer
        click.echo(
            f"Downloaded {name} ({format_size(transfer.bytes_transferred)} "
            f"in {transfer.elapsed:.1f}s, {format_rate(transfer.throughput)})"
        )
        click.echo(f"Saved to: {result.local_path.absolute()}")


@click.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@server_options
def delete(name: str, yes: bool, host: str | None, port: int | None) -> None:
    """Delete a file from the server."""
    if not yes and not click.confirm(f"Delete '{name}' from the server?", default=False):
        click.echo("Delete cancelled.")
        return
    with open_client(host, port) as client:
        click.echo(f"Server response: {client.delete(name)}")
