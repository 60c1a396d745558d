"""Shared types for fileshare.

This module defines types and enums used by both client and server.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TransferDirection(Enum):
    """Direction of a file transfer, seen from the local side."""

    INBOUND = auto()
    OUTBOUND = auto()


class SessionState(str, Enum):
    """State of a server-side connection session.

    Transitions are made only by the session's own worker thread.
    """

    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True)
class FileEntry:
    """A regular file in the shared store."""

    name: str
    size: int


@dataclass(frozen=True)
class TransferDescriptor:
    """One directional movement of a file's bytes.

    Attributes:
        name: Base name of the file being moved.
        total_bytes: Declared size of the payload.
        direction: INBOUND when bytes arrive from the channel.
    """

    name: str
    total_bytes: int
    direction: TransferDirection
