"""Shared file store abstraction.

This module provides:
- validate_name: enforce the flat namespace rules on client-supplied names
- FileStore: abstract interface for the shared store
- LocalFileStore: a directory on the local filesystem

Uploads are written to a staging area first and moved into the store only
once complete, so a half-written file is never listed or downloaded.
"""

from __future__ import annotations

import logging
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from fileshare.core.errors import InvalidName, LocalIOError, NotFound
from fileshare.core.types import FileEntry

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".incoming"


def validate_name(name: str) -> str:
    """Check that a name addresses a single entry of the flat store.

    Args:
        name: Name supplied by a client.

    Returns:
        The name, unchanged.

    Raises:
        InvalidName: If the name is empty, contains a path separator, the
            parent-directory token or a NUL character, or is reserved.
    """
    if (
        not name
        or "/" in name
        or "\\" in name
        or ".." in name
        or "\x00" in name
        or name in (".", STAGING_DIR_NAME)
    ):
        raise InvalidName(name)
    return name


class FileStore(ABC):
    """Abstract interface for the shared file store."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of where files are stored."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Check if a regular file with this name exists."""

    @abstractmethod
    def path_for(self, name: str) -> Path:
        """Resolve an existing file.

        Raises:
            InvalidName: If the name is not valid.
            NotFound: If no regular file has this name.
        """

    @abstractmethod
    def staging_path(self, name: str) -> Path:
        """Return a fresh, not yet existing path to receive an upload into."""

    @abstractmethod
    def commit(self, staging: Path, name: str) -> FileEntry:
        """Move a fully received upload into the store, replacing any file."""

    @abstractmethod
    def discard(self, staging: Path) -> None:
        """Drop a staged upload, if it exists."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Delete a file.

        Returns:
            True if the file was deleted, False if it didn't exist.
        """

    @abstractmethod
    def list_files(self) -> list[FileEntry]:
        """Enumerate regular files, sorted by name."""


class LocalFileStore(FileStore):
    """Shared store backed by one local directory.

    Only regular files directly inside the directory are part of the store.
    Staged uploads live in a hidden subdirectory, which LIST skips.
    """

    def __init__(self, base_path: Path | str) -> None:
        """Initialize local storage, creating the folder if needed.

        Args:
            base_path: Directory exposed to clients.
        """
        self._base_path = Path(base_path).resolve()
        if self._base_path.is_dir():
            logger.info(f"Using existing shared folder: {self._base_path}")
        else:
            self._base_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created shared folder: {self._base_path}")
        self._staging_dir = self._base_path / STAGING_DIR_NAME
        self._staging_dir.mkdir(exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def location(self) -> str:
        """Return the local storage path."""
        return f"Local filesystem: {self._base_path}"

    def _file_path(self, name: str) -> Path:
        return self._base_path / validate_name(name)

    def exists(self, name: str) -> bool:
        """Check if a regular file exists."""
        try:
            return self._file_path(name).is_file()
        except InvalidName:
            return False

    def path_for(self, name: str) -> Path:
        """Resolve an existing file."""
        path = self._file_path(name)
        if not path.is_file():
            raise NotFound(name)
        return path

    def staging_path(self, name: str) -> Path:
        """Return a unique path in the staging area."""
        validate_name(name)
        return self._staging_dir / f"{uuid.uuid4().hex}.part"

    def commit(self, staging: Path, name: str) -> FileEntry:
        """Atomically move a staged upload into place."""
        target = self._file_path(name)
        try:
            os.replace(staging, target)
        except OSError as e:
            self.discard(staging)
            raise LocalIOError(f"Cannot store {name}: {e.strerror or e}") from e
        return FileEntry(name=name, size=target.stat().st_size)

    def discard(self, staging: Path) -> None:
        """Remove a staged upload."""
        try:
            staging.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Could not remove staged upload {staging}: {e}")

    def delete(self, name: str) -> bool:
        """Delete a file."""
        path = self._file_path(name)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise LocalIOError(f"Could not delete {name}: {e.strerror or e}") from e
        return True

    def list_files(self) -> list[FileEntry]:
        """Enumerate regular files in the shared folder."""
        entries: list[FileEntry] = []
        try:
            with os.scandir(self._base_path) as it:
                for entry in it:
                    try:
                        if entry.is_file():
                            entries.append(FileEntry(entry.name, entry.stat().st_size))
                    except FileNotFoundError:
                        # Deleted while listing
                        continue
        except OSError as e:
            raise LocalIOError(f"Cannot list shared folder: {e.strerror or e}") from e
        return sorted(entries, key=lambda e: e.name)

    def clear_staging(self) -> int:
        """Remove uploads left behind by a previous run.

        Returns:
            Number of staged files removed.
        """
        removed = 0
        for path in self._staging_dir.glob("*.part"):
            self.discard(path)
            removed += 1
        if removed:
            logger.info(f"Removed {removed} stale staged upload(s)")
        return removed
