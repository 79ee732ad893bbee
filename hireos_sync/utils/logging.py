"""
Logging setup for hireos_sync.

Everything logs under the ``hireos_sync`` logger. setup_logging() gives it a
stderr console handler and a daily DEBUG file; setup_matching_logger() gives
``hireos_sync.matching`` its own per-run file so name-match decisions can be
audited without the rest of the noise.

Environment:
    HIREOS_SYNC_LOG_LEVEL  DEBUG, INFO, WARNING (or WARN), ERROR, CRITICAL
    HIREOS_SYNC_DEBUG      1/true/yes forces DEBUG
    HIREOS_SYNC_LOG_FILE   explicit log file; "none" or "disabled" turns the
                           file off
"""

import copy
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "hireos_sync"
MATCHING_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.matching"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s %(levelname)-8s %(name)s (%(filename)s:%(lineno)d) %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MATCHING_LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-5s %(message)s"

ENV_LOG_LEVEL = "HIREOS_SYNC_LOG_LEVEL"
ENV_DEBUG = "HIREOS_SYNC_DEBUG"
ENV_LOG_FILE = "HIREOS_SYNC_LOG_FILE"

DEFAULT_LOG_DIR = Path.home() / ".hireos-sync" / "logs"

MAIN_LOG_PREFIX = "hireos_sync_"
MATCHING_LOG_PREFIX = "matching_"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}
_TRUTHY = ("1", "true", "yes")
_FILE_DISABLED = ("", "none", "disabled")

# Remembered so the matching log lands next to the main log
_log_dir: Optional[Path] = None


class ColoredFormatter(logging.Formatter):
    """
    Formatter that wraps the level name and message in ANSI colours.

    Colours are dropped when stderr is not a terminal, when NO_COLOR is set
    or when TERM is "dumb".
    """

    PALETTE = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and _terminal_supports_color()

    def format(self, record: logging.LogRecord) -> str:
        color = self.PALETTE.get(record.levelno) if self.use_colors else None
        if color is None:
            return super().format(record)

        # Other handlers share the record
        tinted = copy.copy(record)
        tinted.levelname = f"{color}{record.levelname}{self.RESET}"
        tinted.msg = f"{color}{record.msg}{self.RESET}"
        return super().format(tinted)


def _terminal_supports_color() -> bool:
    isatty = getattr(sys.stderr, "isatty", None)
    if isatty is None or not isatty():
        return False
    if os.environ.get("NO_COLOR"):
        return False
    return os.environ.get("TERM", "") != "dumb"


def get_log_level_from_env() -> int:
    """Resolve the level from HIREOS_SYNC_DEBUG / HIREOS_SYNC_LOG_LEVEL."""
    if os.environ.get(ENV_DEBUG, "").lower() in _TRUTHY:
        return logging.DEBUG
    name = os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    return _LEVELS.get(name, logging.INFO)


def get_log_file_path(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Return the file the main log should write to.

    HIREOS_SYNC_LOG_FILE wins when set; otherwise a daily file in log_dir
    (or DEFAULT_LOG_DIR). None means file logging is disabled.
    """
    override = os.environ.get(ENV_LOG_FILE)
    if override is not None:
        return None if override.lower() in _FILE_DISABLED else Path(override)

    day = datetime.now().strftime("%Y%m%d")
    return (log_dir or DEFAULT_LOG_DIR) / f"{MAIN_LOG_PREFIX}{day}.log"


def _close_handlers(logger: logging.Logger) -> None:
    for old in list(logger.handlers):
        old.close()
        logger.removeHandler(old)


def _handler(
    handler: logging.Handler, level: int, formatter: logging.Formatter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the hireos_sync logger.

    Calling it again replaces the previous handlers.

    Args:
        level: Console level; defaults to get_log_level_from_env()
        verbose: Force DEBUG and include source locations on the console
        log_dir: Directory for the daily log file
        log_file: Explicit log file, overriding log_dir
        enable_file_logging: Set False for console-only logging
        use_colors: Colour console output where the terminal allows it

    Returns:
        The ``hireos_sync`` logger
    """
    global _log_dir

    if verbose:
        level = logging.DEBUG
    elif level is None:
        level = get_log_level_from_env()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    _close_handlers(logger)
    logger.setLevel(level)
    logger.propagate = False

    console_format = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    formatter_cls = ColoredFormatter if use_colors else logging.Formatter
    logger.addHandler(
        _handler(
            logging.StreamHandler(sys.stderr),
            level,
            formatter_cls(console_format, DATE_FORMAT),
        )
    )

    target = log_file or (get_log_file_path(log_dir) if enable_file_logging else None)
    if enable_file_logging and target is not None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            logger.addHandler(
                _handler(
                    logging.FileHandler(target, encoding="utf-8"),
                    logging.DEBUG,
                    logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT),
                )
            )
            logger.debug(f"Writing log file {target}")
        except OSError as e:
            logger.warning(f"Log file {target} unavailable, console only: {e}")

    _log_dir = log_file.parent if log_file else log_dir
    return logger


def _current_log_dir(log_dir: Optional[Path] = None) -> Path:
    return log_dir or _log_dir or DEFAULT_LOG_DIR


def cleanup_old_logs(log_dir: Optional[Path] = None, keep_count: int = 10) -> int:
    """
    Delete all but the newest keep_count main and matching log files.

    Each log type is counted separately. keep_count <= 0 disables cleanup.

    Returns:
        Number of files deleted
    """
    directory = _current_log_dir(log_dir)
    if keep_count <= 0 or not directory.is_dir():
        return 0

    deleted = 0
    for prefix in (MAIN_LOG_PREFIX, MATCHING_LOG_PREFIX):
        newest_first = sorted(
            directory.glob(f"{prefix}*.log"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        for stale in newest_first[keep_count:]:
            try:
                stale.unlink()
            except OSError as e:
                logging.getLogger(__name__).debug(f"Keeping {stale}: {e}")
            else:
                deleted += 1
    return deleted


def get_logger(name: str) -> logging.Logger:
    """Return a logger under ``hireos_sync``, prefixing foreign names."""
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_matching_log_path(log_dir: Optional[Path] = None) -> Path:
    """Timestamped matching log path in log_dir or the configured log dir."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return _current_log_dir(log_dir) / f"{MATCHING_LOG_PREFIX}{stamp}.log"


def setup_matching_logger(
    log_file: Optional[Path] = None,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Give ``hireos_sync.matching`` a dedicated file for this run.

    Every contact the sync looks at is logged there with its key and the
    outcome (MATCH, NO MATCH or SKIP). When the file can't be opened the
    logger writes to stderr instead.

    Args:
        log_file: Log file path; defaults to get_matching_log_path()
        level: Level for the logger and its handler

    Returns:
        The matching logger
    """
    logger = logging.getLogger(MATCHING_LOGGER_NAME)
    _close_handlers(logger)
    logger.setLevel(level)
    logger.propagate = False

    path = log_file or get_matching_log_path()
    formatter = logging.Formatter(MATCHING_LOG_FORMAT, DATE_FORMAT)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        logger.addHandler(_handler(logging.StreamHandler(sys.stderr), level, formatter))
        logger.warning(f"Matching log {path} unavailable, using stderr: {e}")
        return logger

    logger.addHandler(_handler(handler, level, formatter))
    logger.info(f"Matching log session started at {datetime.now().isoformat()}")
    logger.info(f"Log file: {path}")
    return logger


def get_matching_logger() -> logging.Logger:
    """
    Return the matching logger.

    Without setup_matching_logger() it has no handlers and propagates to
    ``hireos_sync``.
    """
    return logging.getLogger(MATCHING_LOGGER_NAME)


def mask_secret(value: Optional[str], visible: int = 6) -> str:
    """Log-safe rendering of a credential: a short prefix and an ellipsis."""
    if not value:
        return "<unset>"
    return f"{value[:visible]}..."
