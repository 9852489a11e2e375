"""
Logging for irismod.

Every module asks for its logger through :func:`get_logger`. Each logger
writes colored lines to the console through prompt_toolkit and plain lines
to a rotating per-session file under ``logs/``. Messages carry a bracketed
component tag such as ``[CASCADE]`` or ``[VAULT]``.

Environment:
    IRISMOD_LOG_DIR: directory for session log files (default ``./logs``)
    IRISMOD_LOG_LEVEL: console threshold (default ``INFO``)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LINE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%d %H-%M-%S"

# Restarts within this window append to the previous session file
SESSION_REUSE_SECONDS = 60
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET = "\033[0m"

_session_log: Path | None = None


def logs_dir() -> Path:
    """Return the log directory, creating it on first use."""
    directory = Path(os.environ.get("IRISMOD_LOG_DIR", "./logs")).resolve()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def console_level() -> int:
    """Resolve ``IRISMOD_LOG_LEVEL`` to a logging level, falling back to INFO."""
    level = logging.getLevelName(os.environ.get("IRISMOD_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


class ColorFormatter(logging.Formatter):
    """Formatter that paints the whole line in its level's color."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = LEVEL_COLORS.get(record.levelname)
        return f"{color}{line}{RESET}" if color else line


class PromptToolkitHandler(logging.Handler):
    """
    Console handler that writes through ``print_formatted_text``.

    Lines printed this way are redrawn above an active prompt_toolkit prompt
    instead of being interleaved with the user's input.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter is not None:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    """True when stderr is an interactive terminal."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


plain_formatter = logging.Formatter(LINE_FORMAT, datefmt=TIMESTAMP_FORMAT)
console_formatter = ColorFormatter(LINE_FORMAT, datefmt=TIMESTAMP_FORMAT) if should_use_color() else plain_formatter


def get_log_filepath() -> Path:
    """
    Return the log file shared by every logger in this session.

    The first call picks the file. A log from today that was written in the
    last minute is reused, so a quick restart continues the same file;
    otherwise a new file named after the current time is used.

    Returns:
        Path: Session log file.
    """
    global _session_log

    if _session_log is not None:
        return _session_log

    directory = logs_dir()
    now = datetime.now()
    todays = sorted(
        directory.glob(f"{now:%Y-%m-%d}*.log"),
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )
    if todays and now.timestamp() - todays[0].stat().st_mtime < SESSION_REUSE_SECONDS:
        _session_log = todays[0]
    else:
        _session_log = directory / f"{now.strftime(TIMESTAMP_FORMAT)}.log"
    return _session_log


def setup_logger(logger_name: str) -> logging.Logger:
    """
    Attach the console and file handlers to ``logger_name``.

    Calling it again for the same name returns the logger unchanged.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console = PromptToolkitHandler(formatter=console_formatter)
    console.setLevel(console_level())
    logger.addHandler(console)

    session_file = RotatingFileHandler(
        get_log_filepath(), encoding="utf-8", maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS
    )
    session_file.setLevel(logging.DEBUG)
    session_file.setFormatter(plain_formatter)
    logger.addHandler(session_file)
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Return the configured logger for an irismod component."""
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """
    ``sys.excepthook`` replacement that logs uncaught exceptions.

    KeyboardInterrupt goes to the default hook so Ctrl+C exits quietly.
    """
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


# Third-party loggers are clamped to errors only
for _name in ("discord", "discord.gateway", "discord.client", "discord.http", "aiosqlite", "asyncio", "aiohttp"):
    _noisy = logging.getLogger(_name)
    _noisy.setLevel(logging.ERROR)
    _noisy.propagate = False
    _noisy.handlers = []
