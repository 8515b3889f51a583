from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


LOGGER_NAME = "doc_index_sync"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ANSI = {
    "reset": "\033[0m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}
_LEVEL_MARKERS = {logging.ERROR: "⛔ ", logging.CRITICAL: "⛔ ", logging.WARNING: "⚠️ "}


def is_debug_mode() -> bool:
    return os.getenv("LOG_LEVEL", "info").lower() == "debug"


class PypdfFilter(logging.Filter):
    """Drops pypdf warnings about broken cross references in otherwise readable files."""

    _NOISE = ("Ignoring wrong pointing object", "Multiple definitions in dictionary", "incorrect startxref pointer")

    def filter(self, record):
        if not record.name.startswith("pypdf") or record.levelno > logging.WARNING:
            return True
        return not any(noise in str(record.msg) for noise in self._NOISE)


class TimezoneFormatter(logging.Formatter):
    """Stamps records in TIMEZONE and marks warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # a library logged with mismatched args
            return ""
        record.msg = _LEVEL_MARKERS.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ConsoleFormatter(TimezoneFormatter):
    """Wraps the line in the ANSI color passed as extra={"color": ...}."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _ANSI.get(getattr(record, "color", None) or "")
        if not line or not ansi:
            return line
        return f"{ansi}{line}{_ANSI['reset']}"


class ColorLogger:
    """Logger whose methods take an optional color= for the console, e.g.
    logger.info("source synced", color="green"). The log file stays plain.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        # setLevel, handlers, isEnabledFor, ...
        return getattr(self._logger, name)


def get_log_dir() -> str:
    """LOG_DIR, else <ROOT_DIR or cwd>/logs."""
    return os.getenv("LOG_DIR") or os.path.join(os.getenv("ROOT_DIR") or os.getcwd(), "logs")


def _build_config(log_dir: str, tz_name: str, level: int) -> dict:
    def formatter(factory) -> dict:
        return {"()": factory, "format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": formatter(TimezoneFormatter), "console": formatter(ConsoleFormatter)},
        "filters": {"pypdf": {"()": PypdfFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "console",
                "filters": ["pypdf"],
                "level": level,
            },
            "file": {
                "class": "logging.FileHandler",
                "filename": os.path.join(log_dir, "app.log"),
                "encoding": "utf-8",
                "formatter": "plain",
                "filters": ["pypdf"],
                "level": level,
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    }


def setup_logging() -> ColorLogger:
    """Configure console and file logging and return the service logger.

    LOG_LEVEL=debug also lets through the httpx request lines and SQLAlchemy statements.
    """
    debug = is_debug_mode()
    log_dir = get_log_dir()
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(_build_config(log_dir, os.getenv("TIMEZONE", "Europe/Berlin"), logging.DEBUG if debug else logging.INFO))
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
