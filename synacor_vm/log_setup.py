"""
Synacor VM — Logging Setup

Console output goes through rich's RichHandler on stderr so it never
mixes with the program's own character output on stdout. A file handler
is added only when a log file is requested and always captures DEBUG,
which is where the per-instruction trace lands.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from .config import FILE_LOG_DATEFMT, FILE_LOG_FORMAT, LOG_NAME, TRACE_LOG_NAME


def setup_logging(
    name: str = LOG_NAME,
    console_level: int = logging.WARNING,
    log_file: Optional[Union[str, Path]] = None,
    trace: bool = False,
) -> logging.Logger:
    """Configure and return the package logger.

    With trace=True every instruction trace line is written to stderr
    as it is executed, bare, one per line.

    Calling it again replaces the handlers instead of stacking them.
    """
    logger = logging.getLogger(name)
    trace_logger = logging.getLogger(TRACE_LOG_NAME)
    for lg in (logger, trace_logger):
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.DEBUG)

    # ── Console handler: stderr, WARNING+ unless -v/-vv ──
    ch = RichHandler(
        console=Console(file=sys.stderr),
        level=console_level,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    logger.addHandler(ch)

    # ── Trace handler: streamed to stderr, kept out of the rich console ──
    if trace:
        th = logging.StreamHandler(sys.stderr)
        th.setLevel(logging.DEBUG)
        th.setFormatter(logging.Formatter("%(message)s"))
        trace_logger.addHandler(th)
        ch.addFilter(lambda record: not record.name.startswith(TRACE_LOG_NAME))

    # ── File handler: captures everything (DEBUG+) ──
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_LOG_DATEFMT))
        logger.addHandler(fh)
        logger.info("Log file: %s", log_path)

    return logger


def verbosity_to_level(verbose: int, quiet: bool = False) -> int:
    """Map -v count / --quiet to a console log level."""
    if quiet:
        return logging.ERROR
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG
