"""
Structured Logging for willhaben-cli

JSON lines to a rotating file under ~/.willhaben/logs. The terminal belongs
to the full-screen UI, so nothing reaches stderr unless --verbose is given.
"""

import json
import logging
import logging.handlers
import sys

from willhaben_cli.config import willhaben_home

# Attributes passed through `extra=` that end up in the JSON line
EXTRA_FIELDS = ("query", "category_id", "page", "listing_id", "verbose")


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        return json.dumps(log_data, default=str)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Setup structured logging for willhaben-cli.

    Args:
        verbose: If True, also log to stderr (for --verbose flag)

    Returns:
        The "willhaben" logger
    """
    log_dir = willhaben_home() / "logs"
    root_logger = logging.getLogger("willhaben")
    root_logger.handlers.clear()

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        # No log directory: warnings to stderr only
        root_logger.setLevel(logging.INFO if verbose else logging.WARNING)
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        root_logger.addHandler(console_handler)
        if verbose:
            root_logger.warning(f"Could not create log directory: {e}")
        return root_logger

    root_logger.setLevel(logging.DEBUG)

    # 10MB max, keep last 5 files
    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "willhaben.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)
    except OSError as e:
        if verbose:
            print(f"Warning: Could not create log file: {e}", file=sys.stderr)

    if verbose:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        root_logger.addHandler(console_handler)

    root_logger.info("willhaben-cli logging initialized", extra={"verbose": verbose})
    return root_logger
