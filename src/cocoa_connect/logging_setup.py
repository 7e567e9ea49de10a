"""Logging configuration shared by the CLI and the web app."""

import logging
import sys


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Send log records to stderr and quiet the HTTP transport libraries."""
    resolved = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=resolved,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)
