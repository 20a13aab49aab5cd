"""Project loggers: one stdout handler per module logger, level from LOG_LEVEL."""
import logging
import sys

from config.settings import LOG_LEVEL

_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"


def _configured_level() -> int:
    return getattr(logging, LOG_LEVEL.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FMT, datefmt=_DATE_FMT))
        logger.addHandler(handler)
        logger.setLevel(_configured_level())
    return logger


def set_verbose(enabled: bool) -> None:
    """Switch every logger created by get_logger between DEBUG and LOG_LEVEL."""
    level = logging.DEBUG if enabled else _configured_level()
    for logger in list(logging.root.manager.loggerDict.values()):
        if isinstance(logger, logging.Logger) and logger.handlers:
            logger.setLevel(level)
