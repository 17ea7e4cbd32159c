"""Logging utility for hookcast."""
from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

_file_logger: logging.Logger | None = None


def setup_file_logging(log_path: Path) -> None:
    """Mirror log lines into a rotating file (enabled by the ``log_file`` config key)."""
    global _file_logger
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger("hookcast")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5 * 1024 * 1024, backupCount=3,
    )
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    _file_logger = logger


def log(msg: str) -> None:
    """Log to stderr, and to the rotating file when one is configured."""
    if _file_logger:
        _file_logger.info(msg)
    print(f"[hookcast] {msg}", file=sys.stderr)


def debug(enabled: bool, context: str, msg: str) -> None:
    """Emit a debug line only when the caller's debug flag is on."""
    if not enabled:
        return
    if _file_logger:
        _file_logger.info(f"[DEBUG] [{context}] {msg}")
    print(f"[hookcast] [DEBUG] [{context}] {msg}", file=sys.stderr)
