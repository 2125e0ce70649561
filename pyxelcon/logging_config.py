"""
Logging setup shared by the pyxelcon modules.

Modules fetch a child of the 'pyxelcon' logger through get_logger() at import
time; nothing is printed until the CLI calls setup_logging(). Warnings (a
duplicate docData.json, a numLayers mismatch) always show; -v adds the
per-stage progress lines, -d adds per-entry and per-layer detail.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER = 'pyxelcon'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Pillow logs every PNG chunk it reads at DEBUG
NOISY_LOGGERS = ('PIL',)


def _console_level(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """
    Send converter log records to stdout.

    Calling it again (the CLI tests do) replaces the previous handlers.
    Third-party loggers listed in NOISY_LOGGERS never go below INFO, so -d
    shows the converter's own detail without Pillow's chunk dumps.
    """
    level = _console_level(verbose, debug)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """'archive' -> the 'pyxelcon.archive' logger; no name gives 'pyxelcon'."""
    return logging.getLogger(f'{ROOT_LOGGER}.{name}' if name else ROOT_LOGGER)
