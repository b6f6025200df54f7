"""
Loguru setup for hosts embedding the closure library.

The library itself only emits records through ``loguru.logger``; it never
installs sinks on import. Hosts call :func:`setup_logging` (or
:func:`setup_logging_from_config` with the ``logging`` section of a
:class:`~turbclosure.config.ClosureConfig`) to route them.
"""

import sys
from loguru import logger

_TIME = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
_BODY = (
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(level="INFO", show_time=True, sink=None, only_library=False):
    """Replace all loguru sinks with a single formatted one.

    Parameters
    ----------
    level : str
        Logging level (TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)
    show_time : bool
        Whether to show timestamps in the output.
    sink : file-like or callable, optional
        Destination; defaults to the current ``sys.stderr``.
    only_library : bool
        Keep only records emitted from the ``turbclosure`` package.
    """
    logger.remove()

    log_format = (_TIME + _BODY) if show_time else _BODY
    target = sys.stderr if sink is None else sink
    log_filter = "turbclosure" if only_library else None

    logger.add(target, format=log_format, level=str(level).upper(),
               colorize=False if callable(target) else None, filter=log_filter)

    return logger


def setup_logging_from_config(config, sink=None):
    """Apply a ``LoggingConfig`` section (or a full ``ClosureConfig``)."""
    section = getattr(config, "logging", config)
    return setup_logging(section.level, show_time=section.show_time, sink=sink)
