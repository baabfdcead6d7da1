"""
Logging configuration for the phpvm CLI.

``setup_logging`` runs once from main.py; engine modules only ever do
``logger = logging.getLogger(__name__)``.

Console level: --debug / --verbose / --quiet, then PHPVM_LOG_LEVEL,
then WARNING.  PHPVM_LOG_FILE adds a file handler (its own level via
PHPVM_LOG_FILE_LEVEL).  configure/make/package-manager output is never
logged here; it goes to the per-build log file.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "PHPVM_LOG_LEVEL"
ENV_FILE = "PHPVM_LOG_FILE"
ENV_FILE_LEVEL = "PHPVM_LOG_FILE_LEVEL"

# (highest level the format applies to, format, datefmt), first match wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%Y-%m-%d %H:%M:%S")


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler and, optionally, a file handler.

    The root level is the lower of the two handler levels so a DEBUG
    log file still fills up behind a WARNING console.
    """
    console_level = _parse_level(level)
    fmt, datefmt = next((f, d) for upto, f, d in _CONSOLE_FORMATS if console_level <= upto)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(*_FILE_FORMAT))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def _parse_level(level: str) -> int:
    """Level name to number; unknown names mean WARNING."""
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
