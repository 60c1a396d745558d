"""Helpers shared by the FileShare client commands."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, NoReturn, TypeVar

import click

from fileshare.client.api import FileShareClient
from fileshare.client.cli.config import get_client_config
from fileshare.core.errors import ConnectionClosed, FileShareError

F = TypeVar("F", bound=Callable[..., Any])


def fail(message: str) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def server_options(func: F) -> F:
    """Add --host/--port options overriding the saved server address."""
    func = click.option(
        "--port",
        "-p",
        type=int,
        default=None,
        help="Server port (default: saved config or 8080).",
    )(func)
    func = click.option(
        "--host",
        "-H",
        default=None,
        help="Server host (default: saved config or localhost).",
    )(func)
    return func


@contextmanager
def open_client(host: str | None, port: int | None) -> Iterator[FileShareClient]:
    """Connect to the server for the duration of one command.

    Any FileShareError raised inside the block is reported and exits with 1.
    """
    client = FileShareClient(get_client_config(host, port))
    try:
        client.connect()
    except ConnectionClosed as e:
        fail(
            f"Cannot connect to server at {client.config.address}: {e}\n"
            "Make sure the server is running."
        )

    with client:
        try:
            yield client
        except FileShareError as e:
            fail(str(e))


class ProgressBar:
    """Progress callback drawing a click progress bar.

    The bar is created on the first report, once the total size is known.
    """

    def __init__(self, label: str, enabled: bool = True) -> None:
        self.label = label
        self.enabled = enabled
        self._bar: Any = None
        self._last = 0

    def __call__(self, done: int, total: int, elapsed: float) -> None:
        if not self.enabled or total <= 0:
            return
        if self._bar is None:
            self._bar = click.progressbar(length=total, label=self.label)
            self._bar.__enter__()
        self._bar.update(done - self._last)
        self._last = done

    def __enter__(self) -> ProgressBar:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._bar is not None:
            self._bar.__exit__(None, None, None)
            self._bar = None
