from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger

APP_LOGGER_NAME = "authz_rag_bridge"

# third-party loggers that flood INFO with one line per request
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}
_LEVEL_PREFIX: dict[int, str] = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}


def get_log_level() -> int:
    """LOG_LEVEL as a logging constant, INFO when unset or unknown."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "info").upper())
    return level if isinstance(level, int) else logging.INFO


class CustomFormatter(logging.Formatter):
    """Timestamps in TIMEZONE and a warning/error marker in front of the message."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)

        # work on a copy, the same record is passed to every handler
        record = logging.makeLogRecord(record.__dict__)
        record.msg = _LEVEL_PREFIX.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter. Colors a line when the record carries a ``color``
    attribute, set by passing ``color=<name>`` to :class:`ColorLogger` methods.
    """

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Wrapper around :class:`logging.Logger` accepting an optional ``color=``
    keyword on every log method::

        logger.info("access resolved for %s", subject, color="green")

    The file handler ignores colors.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, kwargs: dict, color: str | None, exc_info=None):
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        if exc_info is not None:
            kwargs.setdefault("exc_info", exc_info)
        # report the caller, not this wrapper
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, kwargs, color)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, kwargs, color)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, kwargs, color)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, kwargs, color)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, kwargs, color)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, kwargs, color, exc_info=True)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._log(level, msg, args, kwargs, color)

    def __getattr__(self, name):
        """Delegate all other Logger attributes (e.g. setLevel, handlers) transparently."""
        return getattr(self._logger, name)


def setup_logging() -> ColorLogger:
    """Configure console and rotating file logging and return the app logger.

    Env:
        LOG_LEVEL:            debug, info, warning or error (default info).
        TIMEZONE:             Timezone of log timestamps (default Europe/Berlin).
        ROOT_DIR:             Log files go to $ROOT_DIR/logs (default: working directory).
        LOG_FILE_MAX_BYTES:   Size at which app.log is rotated (default 10 MB).
        LOG_FILE_BACKUPS:     Rotated files to keep (default 5).
    """
    log_dir = os.path.join(os.getenv("ROOT_DIR") or os.getcwd(), "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    loglevel = get_log_level()
    os.makedirs(log_dir, exist_ok=True)

    line_format = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": CustomFormatter,
                "format": line_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": line_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "level": loglevel,
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": int(os.getenv("LOG_FILE_MAX_BYTES", str(10 * 1024 * 1024))),
                "backupCount": int(os.getenv("LOG_FILE_BACKUPS", "5")),
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    # request lines of the HTTP libraries only in debug mode
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if loglevel <= logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(APP_LOGGER_NAME))
