"""Diagnostics for native messaging hosts.

stdout carries protocol frames only, so logs go to stderr or,
when NATIVE_MESSAGING_LOG_FILE is set, to a file that is trimmed
to its last lines on startup.
"""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOGGER_NAME = "native_messaging"
LOG_FILE_ENV = "NATIVE_MESSAGING_LOG_FILE"
LOG_LEVEL_ENV = "NATIVE_MESSAGING_LOG_LEVEL"
_MAX_LOG_LINES = 1000
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def _truncate_log(log_file: Path, max_lines: int) -> None:
    """Keep only the last max_lines lines of an existing log."""
    if not log_file.exists():
        return
    try:
        lines = log_file.read_text(encoding="utf-8").splitlines()
        if len(lines) > max_lines:
            log_file.write_text(
                "\n".join(lines[-max_lines:]) + "\n",
                encoding="utf-8",
            )
    except (OSError, UnicodeDecodeError):
        pass


def _resolve_level(level: str | int | None) -> int:
    raw = level if level is not None else os.environ.get(LOG_LEVEL_ENV)
    if raw is None:
        return logging.WARNING
    if isinstance(raw, int):
        return raw
    resolved = logging.getLevelName(raw.strip().upper())
    return resolved if isinstance(resolved, int) else logging.WARNING


def setup_logging(
    *,
    level: str | int | None = None,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Configure the package logger once; never touches stdout.

    Falls back to stderr if the log file cannot be opened.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_resolve_level(level))

    # Don't add handlers if already configured
    if logger.handlers:
        return logger

    target = log_file if log_file is not None else os.environ.get(LOG_FILE_ENV)
    handler: logging.Handler | None = None
    if target:
        path = Path(target).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _truncate_log(path, _MAX_LOG_LINES)
            handler = logging.FileHandler(str(path), encoding="utf-8")
        except OSError:
            handler = None
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
