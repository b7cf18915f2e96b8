"""
Logging setup: Rich console output on stderr plus a daily rotated log file.
"""

import logging
import logging.handlers

from rich.console import Console
from rich.logging import RichHandler

from .config import Settings

FILE_FORMAT = "%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d in %(funcName)s() - %(message)s"

# Client libraries that log every request or frame at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "aio_pika", "aiormq")


def _console_handler(level: str) -> RichHandler:
    # stdout is reserved for standalone notifications
    handler = RichHandler(
        console=Console(width=120, stderr=True),
        show_path=True,
        markup=True,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


def _file_handler(settings: Settings) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=settings.log_file_path,
        when="midnight",
        backupCount=settings.log_retention_days,
        encoding="utf-8",
    )
    handler.setLevel(settings.log_level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def setup_logging(settings: Settings) -> None:
    settings.log_directory.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.addHandler(_console_handler(settings.log_level))
    root_logger.addHandler(_file_handler(settings))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(
        f"[bold green]Logging initialized[/] for mode [cyan]{settings.mode}[/] - "
        f"file: [cyan]{settings.log_file_path}[/], level: [yellow]{settings.log_level}[/], "
        f"retention: [blue]{settings.log_retention_days}[/] days"
    )
