"""
Logging configuration for notion-util.

Quiet by default: library chatter (httpx request lines) is suppressed
unless --verbose or NOTION_UTIL_VERBOSE=1.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LIBRARY_LOGGERS = ("httpx", "httpcore")


def configure_quiet_mode(quiet: bool = True):
    """
    Silence library loggers and warnings.

    Args:
        quiet: If True, suppress verbose output. If False, show everything.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        for name in _LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    else:
        warnings.filterwarnings("default")
        for name in _LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    for name in ("notion_util", *_LIBRARY_LOGGERS):
        logging.getLogger(name).setLevel(logging.DEBUG)


def configure_ops_log(log_dir):
    """Configure a persistent operations log.

    Writes to {log_dir}/ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so the caller can remove it.
    """
    log_path = Path(log_dir) / "ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    pkg_logger = logging.getLogger("notion_util")
    pkg_logger.addHandler(handler)
    # Ensure INFO gets through even in quiet mode
    if pkg_logger.level == logging.NOTSET or pkg_logger.level > logging.INFO:
        pkg_logger.setLevel(logging.INFO)

    return handler
