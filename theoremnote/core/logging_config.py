"""
Process-wide logging for the note server and the CLI.

Everything goes to ``<log_dir>/theorem-note.log`` (rotated) at DEBUG; the
console follows ``debug_mode``. Library loggers that chatter during every
render or request are held at WARNING.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "theorem-note.log"
LOG_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

# Python-Markdown logs every extension load; werkzeug logs every request
QUIET_LOGGERS = {
    'MARKDOWN': logging.WARNING,
    'werkzeug': logging.WARNING,
}


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _file_handler(log_file: Path) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_SIZE,
        backupCount=LOG_BACKUP_COUNT,
        encoding='utf-8',
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_formatter())
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    return handler


def _reset_handlers(root_logger: logging.Logger) -> None:
    """Drop and close whatever an earlier setup (or a test runner) installed."""
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


def setup_logging(log_dir: Path, debug_mode: bool = False) -> Path:
    """Install the file and console handlers on the root logger; returns the log file path."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    level = logging.DEBUG if debug_mode else logging.INFO

    root_logger = logging.getLogger()
    _reset_handlers(root_logger)
    root_logger.setLevel(level)
    root_logger.addHandler(_file_handler(log_file))
    root_logger.addHandler(_console_handler(level))

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    logging.info(f"Logging initialized ({logging.getLevelName(level)}). Log file: {log_file}")
    return log_file
