"""
Logging setup for the ``reconciler`` command.

Console output goes to stderr so that ``--json`` output on stdout stays
parseable. The console level comes from the first of:

    --debug / --verbose / --quiet  >  RECONCILER_LOG_LEVEL  >  WARNING

RECONCILER_LOG_FILE adds a file log of every run, at
RECONCILER_LOG_FILE_LEVEL (default DEBUG), independent of the console.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "RECONCILER_LOG_LEVEL"
ENV_FILE = "RECONCILER_LOG_FILE"
ENV_FILE_LEVEL = "RECONCILER_LOG_FILE_LEVEL"

# console format per level; anything above INFO is the bare message
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s  %(message)s", "%H:%M:%S"),
}
_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s  %(message)s"


def cli_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str | None:
    """Level name selected by the global CLI flags, or None when none is set."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return None


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with the reconciler's.

    Arguments left as None fall back to the RECONCILER_LOG_* variables.
    Safe to call more than once; each call starts from a clean root.
    """
    console_level = parse_level(level or os.environ.get(ENV_LEVEL))
    log_file = log_file or os.environ.get(ENV_FILE)

    fmt, datefmt = _CONSOLE_FORMATS.get(console_level, ("%(message)s", None))
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)
    root.setLevel(console_level)

    if log_file:
        file_level = parse_level(
            log_file_level or os.environ.get(ENV_FILE_LEVEL), default=logging.DEBUG
        )
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        root.addHandler(fh)
        root.setLevel(min(console_level, file_level))


def parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Numeric level for a name like ``"info"``; unknown names give ``default``."""
    if not level:
        return default
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else default
