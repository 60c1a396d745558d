"""FileShare - share a directory with clients over a simple TCP protocol."""

__version__ = "0.1.0"
