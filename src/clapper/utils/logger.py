"""Logging for clapper: Rich console output, a rotated log file, and the
``debug`` verbosity policy for the ``clapper`` package loggers."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console()

PACKAGE_LOGGER = "clapper"

_DEFAULT_LOG_DIR = Path.home() / ".clapper" / "logs"
_LOG_FILE_NAME = "clapper.log"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_FILE_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_KEEP_DAYS = 7


def apply_verbosity(debug: bool) -> None:
    """Set the clapper loggers to DEBUG when *debug* is on, INFO otherwise.

    Engine diagnostics and per-clap deltas are logged at DEBUG, so this is
    what makes them visible.  Called on init and on every config update.
    """
    level = logging.DEBUG if debug else logging.INFO
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.level != level:
        package_logger.setLevel(level)
        package_logger.debug("Verbosity set to %s", logging.getLevelName(level))


def setup_logging(
    debug: bool = False,
    log_level: str = "INFO",
    log_dir: Path | None = None,
) -> None:
    """Install the console and file handlers on the root logger.

    Args:
        debug: Show DEBUG records on the console and the source path.
        log_level: Console level when *debug* is off (e.g. "WARNING").
        log_dir: Directory of the daily-rotated log file.
    """
    console_level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    log_dir = log_dir or _DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(console_level)
    root.handlers.clear()

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_path=debug,
    )
    rich_handler.setLevel(console_level)
    root.addHandler(rich_handler)

    # Claps and restarts are kept at DEBUG in the file regardless of console level
    log_file = log_dir / _LOG_FILE_NAME
    file_handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        backupCount=_KEEP_DAYS,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATE_FMT))
    root.addHandler(file_handler)

    apply_verbosity(debug)
    logging.getLogger(__name__).debug("Logging to %s", log_file)
