"""
Logger configuration for CDK synthesis.

Logs go to stderr so they never mix with anything the CDK CLI reads from stdout.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with an ISO timestamp format."""
    # Remove any existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(level.upper())
    root_logger.addHandler(handler)

    # jsii chatters about kernel calls at DEBUG
    logging.getLogger("jsii").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger (usually called with __name__)."""
    return logging.getLogger(name)
