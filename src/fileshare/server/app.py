"""FileShare server bootstrap.

This module wires configuration, logging, the shared store and the
connection acceptor together, and installs the termination signal handlers
that trigger a graceful shutdown.

Usage:
    fileshare serve --port 8080 --shared-folder shared_files
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
from pathlib import Path
from types import FrameType

from fileshare.core.config import ServerConfig
from fileshare.server.acceptor import ConnectionAcceptor
from fileshare.server.storage import LocalFileStore

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path | None, level: int = logging.INFO) -> None:
    """Configure logging to output to both file and stdout.

    Args:
        log_path: Path to the log file, or None for stdout only.
        level: Log level for the fileshare logger.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    # Root logger for fileshare
    root_logger = logging.getLogger("fileshare")
    root_logger.setLevel(level)

    # Avoid duplicate handlers when called more than once
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    if log_path is not None:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def create_server(config: ServerConfig) -> ConnectionAcceptor:
    """Create an acceptor serving the configured shared folder.

    The shared folder is created if it does not exist. The acceptor is
    returned unstarted.
    """
    store = LocalFileStore(config.shared_folder)
    store.clear_staging()
    return ConnectionAcceptor(config, store)


def install_signal_handlers(acceptor: ConnectionAcceptor, grace_period: float) -> None:
    """Shut the acceptor down gracefully on SIGINT/SIGTERM.

    Must be called from the main thread.
    """

    def handle_signal(signum: int, frame: FrameType | None) -> None:
        logger.info(f"Shutdown signal received ({signal.Signals(signum).name}). Stopping server...")
        # Shutdown joins worker threads; keep it off the signal handler
        threading.Thread(
            target=acceptor.shutdown,
            args=(grace_period,),
            name="Shutdown",
            daemon=True,
        ).start()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def run_server(config: ServerConfig) -> None:
    """Run the server until a termination signal arrives."""
    acceptor = create_server(config)
    acceptor.start()

    host, port = acceptor.address
    logger.info("=" * 60)
    logger.info("FileShare Server Started")
    logger.info("=" * 60)
    logger.info("  Port:          %s", port)
    logger.info("  Interface:     %s", host)
    logger.info("  Shared folder: %s", Path(config.shared_folder).resolve())
    logger.info("  Max clients:   %s", config.max_clients)
    if config.read_timeout:
        logger.info("  Read timeout:  %ss", config.read_timeout)
    logger.info("  Logs:          %s", Path(config.log_path).absolute())
    logger.info("Press Ctrl+C to stop the server")
    logger.info("=" * 60)

    install_signal_handlers(acceptor, config.grace_period)
    acceptor.serve_forever()
    logger.info("Server stopped successfully.")
