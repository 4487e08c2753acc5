import logging
from logging import (
    CRITICAL,
    DEBUG,
    ERROR,
    FATAL,
    INFO,
    WARN,
    WARNING,
)
from typing import Union

from .logger import ParabootstrapLogger

NETWORK = DEBUG + 6

logging.addLevelName(NETWORK, "NETWORK")


class MaxLevelFilter(logging.Filter):
    """
    Passes records strictly below `level`, so a stdout handler can leave errors to the stderr handler.
    """

    def __init__(self, level: Union[int, str] = ERROR):
        super().__init__()
        self._level = logging.getLevelName(level) if isinstance(level, str) else level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self._level


__all__ = [
    "ParabootstrapLogger",
    "MaxLevelFilter",
    "NETWORK",
    "CRITICAL",
    "DEBUG",
    "ERROR",
    "FATAL",
    "INFO",
    "WARN",
    "WARNING",
]
