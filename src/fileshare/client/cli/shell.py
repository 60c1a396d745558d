"""Interactive shell for FileShare CLI.

Commands:
- shell: Menu-driven session over a single server connection
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from fileshare.client.api import ClientError, FileShareClient, ServerResponseError
from fileshare.client.cli.common import ProgressBar, fail, server_options
from fileshare.client.cli.config import get_client_config
from fileshare.core.errors import ConnectionClosed, FileShareError, ProtocolError
from fileshare.core.formatting import format_size

BANNER_RULE = "=" * 50

MENU = """
Available commands:
1. List files on server
2. Upload file to server
3. Download file from server
4. Delete file from server
5. Show this menu
6. Quit"""


def _ask(text: str) -> str:
    return click.prompt(text, default="", show_default=False).strip()


def _show_banner(client: FileShareClient) -> None:
    click.echo("\n" + BANNER_RULE)
    click.echo("         FILE SHARING CLIENT")
    click.echo(BANNER_RULE)
    click.echo(f"Connected to: {client.config.address}")
    click.echo(f"Download folder: {Path(client.config.download_folder).absolute()}")
    click.echo(BANNER_RULE)


def _do_list(client: FileShareClient, progress: bool) -> None:
    click.echo("\n" + client.list_files())


def _do_upload(client: FileShareClient, progress: bool) -> None:
    raw = _ask("\nEnter the full path of the file to upload")
    if not raw:
        click.echo("File path cannot be empty.")
        return
    path = Path(raw).expanduser()
    if not path.exists():
        click.echo(f"File not found: {path}")
        return
    if not path.is_file():
        click.echo(f"Path is not a file: {path}")
        return

    click.echo(f"File: {path.name}")
    click.echo(f"Size: {format_size(path.stat().st_size)}")
    if not click.confirm("Proceed with upload?", default=False):
        click.echo("Upload cancelled.")
        return

    with ProgressBar(f"Uploading {path.name}", enabled=progress) as bar:
        message = client.upload(path, on_progress=bar)
    click.echo(f"Server response: {message}")


def _do_download(client: FileShareClient, progress: bool) -> None:
    name = _ask("\nEnter the name of the file to download")
    if not name:
        click.echo("Filename cannot be empty.")
        return

    local_path = Path(client.config.download_folder) / Path(name).name
    overwrite = False
    if local_path.exists():
        if not click.confirm("File already exists locally. Overwrite?", default=False):
            click.echo("Download cancelled.")
            return
        overwrite = True

    with ProgressBar(f"Downloading {name}", enabled=progress) as bar:
        result = client.download(name, on_progress=bar, overwrite=overwrite)
    click.echo("File downloaded successfully!")
    click.echo(f"Saved to: {result.local_path.absolute()}")


def _do_delete(client: FileShareClient, progress: bool) -> None:
    name = _ask("\nEnter the name of the file to delete")
    if not name:
        click.echo("Filename cannot be empty.")
        return
    prompt = f"Are you sure you want to delete '{name}' from the server?"
    if not click.confirm(prompt, default=False):
        click.echo("Delete cancelled.")
        return
    click.echo(f"Server response: {client.delete(name)}")


ACTIONS = {
    "1": _do_list,
    "2": _do_upload,
    "3": _do_download,
    "4": _do_delete,
}


@click.command()
@click.option("--no-progress", is_flag=True, help="Do not show progress bars.")
@server_options
def shell(no_progress: bool, host: str | None, port: int | None) -> None:
    """Start an interactive session with the server."""
    client = FileShareClient(get_client_config(host, port))
    click.echo(f"Connecting to server at {client.config.address}...")
    try:
        client.connect()
    except ConnectionClosed as e:
        fail(
            f"Failed to connect to server: {e}\n"
            f"Make sure the server is running on {client.config.address}"
        )
    click.echo("Successfully connected to server!")

    _show_banner(client)
    click.echo(MENU)
    try:
        while True:
            choice = _ask("\n> Enter your choice (1-6)")
            if choice == "5":
                click.echo(MENU)
                continue
            if choice == "6":
                try:
                    click.echo(f"Server: {client.quit()}")
                except (ConnectionClosed, ProtocolError) as e:
                    click.echo(f"Connection to server already closed: {e}")
                click.echo("Goodbye!")
                return

            action = ACTIONS.get(choice)
            if action is None:
                click.echo("Invalid choice. Please enter a number between 1-6.")
                click.echo("Type '5' to show the menu again.")
                continue
            try:
                action(client, not no_progress)
            except (ClientError, ServerResponseError) as e:
                click.echo(f"Error: {e}")
            except (ConnectionClosed, ProtocolError) as e:
                fail(f"Connection to server lost: {e}")
            except FileShareError as e:
                click.echo(f"Error: {e}", err=True)
                if not client.is_connected:
                    sys.exit(1)
    except click.Abort:
        click.echo("\nInterrupted.")
    finally:
        client.close()
