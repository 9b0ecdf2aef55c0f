import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 1

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# third party loggers that drown out ours at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")

_MARKER = "_moviegroups_handler"


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: Path = Path("logs"), level: str = "INFO"):
    """Send application logs to the console, logs/info.log and logs/error.log.

    Safe to call repeatedly: handlers installed by an earlier call are
    closed and replaced, so every app built in a test run logs to its own
    directory.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    handlers = [
        _file_handler(log_dir / "info.log", log_level, formatter),
        _file_handler(log_dir / "error.log", logging.ERROR, formatter),
        console_handler,
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        if getattr(handler, _MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    for handler in handlers:
        setattr(handler, _MARKER, True)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger(__name__).info(f"Logging to {log_dir.resolve()} at level {logging.getLevelName(log_level)}")
