"""
Logging setup.

Configures a console handler for the ``corrpanel`` namespace and hands out
module loggers. Library modules obtain loggers through :func:`get_logger`;
applications call :func:`setup_logging` once at startup, usually with the
same CorrelationConfig they pass to the calculator.
"""

import logging
import sys
from typing import Optional
from corrpanel.config import CorrelationConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    config: Optional[CorrelationConfig] = None,
    level: Optional[str] = None,
    stream: Optional[object] = None
) -> None:
    """
    Configure logging for the ``corrpanel`` namespace.

    The level comes from `level` if given, otherwise from
    ``config.log_level``, otherwise INFO. Idempotent: calling it again only
    updates the level, it never attaches a second handler.

    Args:
        config: Configuration whose log_level is applied
        level: Explicit log level name, overriding config
        stream: Output stream for the console handler (default: stdout)
    """
    if level is None:
        level = config.log_level if config is not None else "INFO"

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger("corrpanel")
    logger.setLevel(log_level)

    if any(getattr(h, "_corrpanel_handler", False) for h in logger.handlers):
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._corrpanel_handler = True
    logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``corrpanel`` namespace."""
    if name == "corrpanel" or name.startswith("corrpanel."):
        return logging.getLogger(name)
    return logging.getLogger(f"corrpanel.{name}")
