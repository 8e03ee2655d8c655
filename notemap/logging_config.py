"""Logging configuration for NoteMap."""

import logging
import sys


def setup_logging(verbose: bool = False):
    """Configure logging for the application.

    Args:
        verbose: Enable debug logging if True.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # Decoding goes through librosa, which pulls in numba and soundfile
    for noisy in ("librosa", "numba", "soundfile", "audioread"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
