"""Human-readable formatting helpers."""

from __future__ import annotations


def format_size(size_bytes: int) -> str:
    """Format size in bytes to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    if size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def format_rate(bytes_per_second: float) -> str:
    """Format a transfer rate, e.g. "1.5 MB/s"."""
    return f"{format_size(int(bytes_per_second))}/s"
