"""
Logging setup for the revenant CLI.

Diagnostics go to stderr through the standard logging module. Command
output meant for the user is printed by the CLI itself.
"""

import logging
import sys
from typing import Optional

from revenant.config import get_settings


def setup_logging(
    verbose: bool = False,
    level: Optional[str] = None,
    format_string: Optional[str] = None,
) -> None:
    """Set up logging configuration.

    ``verbose`` forces DEBUG regardless of the configured level.
    """
    settings = get_settings()

    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, (level or settings.log_level).upper())
    log_format = format_string or settings.log_format

    # Root logger configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(console_handler)
