"""Logging configuration for the command-line tools."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "SHARDPRESS_LOG_LEVEL"
DEFAULT_LEVEL_NAME = "INFO"

console = Console(stderr=True)


def resolve_level(verbose: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LEVEL_NAME).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_logging(verbose: bool = False) -> None:
    """Install one Rich handler on the root logger, replacing any earlier one we installed."""

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_shardpress_managed", False):
            root_logger.removeHandler(handler)

    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._shardpress_managed = True
    root_logger.addHandler(handler)
    root_logger.setLevel(resolve_level(verbose))
    logging.captureWarnings(True)
