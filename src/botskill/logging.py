"""Logging configuration for the BotSkill CLI.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the CLI entry point.
"""

import logging
import os
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV_VAR = "BOTSKILL_LOG_LEVEL"

# Third-party loggers that are far too chatty at DEBUG
_VERBOSE_PACKAGES: Final[set[str]] = {"httpx", "httpcore"}


def get_log_level(default: int = logging.WARNING) -> int:
    """Read the log level from BOTSKILL_LOG_LEVEL.

    Accepts level names (``debug``, ``INFO``) or numeric values.

    Raises:
        ValueError: If the variable holds something that is not a level.
    """
    raw = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    if not isinstance(level, int):
        msg = f"{LOG_LEVEL_ENV_VAR} must be a logging level name, got '{raw}'"
        raise ValueError(msg)
    return level


def configure_logging(verbose: bool = False) -> None:
    """Install a rich handler on the root logger.

    Args:
        verbose: Force DEBUG regardless of BOTSKILL_LOG_LEVEL.
    """
    level = logging.DEBUG if verbose else get_log_level()

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )

    for package in _VERBOSE_PACKAGES:
        logging.getLogger(package).setLevel(max(level, logging.INFO))

    logging.getLogger(__name__).debug("Logging configured at level %s", logging.getLevelName(level))
