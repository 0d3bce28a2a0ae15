"""Logging configuration using loguru.

Console lines carry the module name and, when bound, the wiki endpoint
a request works on:

    12:00:01 | WARNING  | wiki [Category:OCG_cards] - Attempt 1/3 [503] failed ...

Standard library records (httpx, httpcore, progress reporting) are
routed into loguru. An optional rotating file receives every record.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

    from yugipedia_fetch.config import LoggingConfig

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Third-party loggers that report every HTTP exchange at INFO
HTTP_LOGGERS = ("httpx", "httpcore")


class InterceptHandler(logging.Handler):
    """Route standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip the logging module's own frames to report the real caller
        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _source(record: Record) -> str:
    return "{extra[name]}" if "name" in record["extra"] else "{name}"


def _console_format(record: Record) -> str:
    context = " [{extra[endpoint]}]" if "endpoint" in record["extra"] else ""
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{_source(record)}</cyan>{context} - <level>{{message}}</level>\n{{exception}}"
    )


def _file_format(record: Record) -> str:
    return (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
        f"{_source(record)}:{{function}}:{{line}} | {{extra}} | {{message}}\n{{exception}}"
    )


def effective_level(level: LogLevel, *, verbose: bool = False, quiet: bool = False) -> LogLevel:
    """Apply the CLI overrides. ``verbose`` wins over ``quiet``."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    config: LoggingConfig | None = None,
) -> Logger:
    """Configure loguru for the application.

    Args:
        level: Base log level from settings
        verbose: Log at DEBUG (overrides level and quiet)
        quiet: Log at WARNING (overrides level)
        config: File logging options; no file is written when omitted
            or when ``config.log_file`` is unset

    Returns:
        The configured logger
    """
    console_level = effective_level(level, verbose=verbose, quiet=quiet)

    logger.remove()
    logger.add(
        sys.stderr,
        level=console_level,
        format=_console_format,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    if config is not None and config.log_file:
        logger.add(
            config.log_file,
            level="DEBUG",
            format=_file_format,
            rotation=config.rotation,
            retention=config.retention,
            compression="gz",
            serialize=config.serialize,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    http_level = logging.DEBUG if console_level in ("TRACE", "DEBUG") else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    return logger


def get_logger(name: str) -> Logger:
    """Logger with ``name`` bound, for module-level use.

    Usage:
        logger = get_logger(__name__)
    """
    return logger.bind(name=name)


def bind_endpoint(endpoint: str) -> Logger:
    """Logger bound to a wiki endpoint (page or category title)."""
    return logger.bind(name="wiki", endpoint=endpoint)


def bind_operation(operation: str, endpoint: str) -> Logger:
    """Logger bound to a client operation (e.g. "get_all_pages") and its endpoint."""
    return logger.bind(name="wiki", operation=operation, endpoint=endpoint)


def reset_logging() -> None:
    """Remove every handler, closing any log file."""
    logger.remove()
