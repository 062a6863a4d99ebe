"""
Ternary VM — Logging Setup

Library modules only create loggers (logging.getLogger(__name__)); the
CLI calls setup_logging() once to attach handlers to the package logger.

Console output goes through rich's RichHandler on stderr, keeping stdout
for program results. An optional log file captures everything at DEBUG
with the pipe-separated format:

  2026-01-19 10:00:00 | DEBUG   | ternary_vm.emu | step:98 | 0: LIT 5 NOP | ...
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = 'ternary_vm'


def setup_logging(
    console_level: int = logging.WARNING,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure and return the package logger.

    Calling it again replaces the handlers installed by a previous call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if log_file else console_level)

    ch = RichHandler(
        level=console_level,
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    ch.setLevel(console_level)
    logger.addHandler(ch)

    # ── File handler: captures everything (DEBUG+) ──
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding='utf-8')
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(fh)
        logger.info("Log file: %s", log_path)

    return logger
