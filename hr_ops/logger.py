"""
Application logging

One JSON log pipeline per process. Module loggers are children of the
``hr_ops`` logger, so every record goes through the same handlers:

- ``<log dir>/hr_ops.log``   INFO and above, rotated
- ``<log dir>/errors.log``   ERROR and above, rotated
- console                    level from HR_OPS_LOG_LEVEL

Lifecycle records can carry ``entity_id``, ``action`` and ``status`` through
``extra=``; the formatter lifts them into the JSON object.
"""
import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER_NAME = "hr_ops"
LIFECYCLE_FIELDS = ("entity_id", "action", "status")


class SingletonLogger:
    """Builds the ``hr_ops`` handler stack once per process."""
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance.root = instance._configure_root()
                cls._instance = instance
        return cls._instance

    def get_logger(self, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
        """
        Get a logger below the application root logger.

        Args:
            name (str): Dotted logger name, e.g. "hr_ops.buisness.assets"

        Returns:
            logging.Logger: Child of the configured root logger
        """
        if not name or name == ROOT_LOGGER_NAME:
            return self.root
        if not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    @staticmethod
    def _configure_root() -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers.clear()

        formatter = JsonFormatter({
            "timestamp": "asctime",
            "level": "levelname",
            "logger": "name",
            "function": "funcName",
            "line": "lineno",
            "message": "message",
        })

        log_dir = Path(os.environ.get("HR_OPS_LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)

        for filename, level in (("hr_ops.log", logging.INFO), ("errors.log", logging.ERROR)):
            handler = RotatingFileHandler(log_dir / filename, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
            handler.setLevel(level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        console = logging.StreamHandler()
        console_level = os.environ.get("HR_OPS_LOG_LEVEL", "INFO").upper()
        console.setLevel(getattr(logging, console_level, logging.INFO))
        console.setFormatter(formatter)
        logger.addHandler(console)

        return logger


class JsonFormatter(logging.Formatter):
    """
    Formats each record as a single JSON object.

    ``fmt_dict`` maps output keys to LogRecord attribute names.
    """
    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03dZ"

    def __init__(self, fmt_dict: dict = None):
        super().__init__()
        self.fmt_dict = fmt_dict or {"message": "message"}

    def usesTime(self) -> bool:
        return "asctime" in self.fmt_dict.values()

    def format(self, record) -> str:
        record.message = record.getMessage()
        if self.usesTime():
            record.asctime = self.formatTime(record)

        payload = {key: getattr(record, attr, None) for key, attr in self.fmt_dict.items()}
        for field in LIFECYCLE_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            payload["exc_info"] = record.exc_text
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(payload, default=str)


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a logger wired to the shared JSON handlers."""
    return SingletonLogger().get_logger(name)
