import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from concurrent_log_handler import ConcurrentRotatingFileHandler

from prizedraw.common.logging_utils import ContextFilter

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s%(context_suffix)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# sqlalchemy.engine echoes every statement at INFO
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.ERROR,
    "sqlalchemy.pool": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "alembic": logging.WARNING,
    "apscheduler": logging.WARNING,
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the bound job/draw context flattened
    into top-level keys so log queries can filter on draw_id."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(getattr(record, "context", None) or {})
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


@dataclass
class LogSettings:
    environment: str
    log_dir: str
    level: int
    json_output: bool

    @classmethod
    def from_env(cls, environment: Optional[str] = None) -> "LogSettings":
        environment = environment or os.getenv("ENVIRONMENT", "prod")
        return cls(
            environment=environment,
            log_dir=os.getenv("LOG_DIR", "./logs"),
            level=logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper()),
            # structured output is the default where logs are shipped
            json_output=os.getenv(
                "LOG_JSON_FORMAT", "true" if environment == "prod" else "false"
            ).lower()
            == "true",
        )

    @property
    def console_level(self) -> int:
        return logging.DEBUG if self.environment == "dev" else self.level


def build_formatter(settings: LogSettings) -> logging.Formatter:
    if settings.json_output:
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, DATE_FORMAT)


def configure_logging(settings: LogSettings) -> ConcurrentRotatingFileHandler:
    """Route the root logger to the console and a rotating file shared by every
    worker process, tagging each record with its job and draw context."""
    os.makedirs(settings.log_dir, exist_ok=True)

    formatter = build_formatter(settings)
    context_filter = ContextFilter()

    file_handler = ConcurrentRotatingFileHandler(
        os.path.join(settings.log_dir, f"prizedraw_{settings.environment}.log"),
        maxBytes=10_000_000,
        backupCount=10,
    )
    file_handler.setLevel(settings.level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(settings.console_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(min(settings.level, settings.console_level))

    for handler in (console_handler, file_handler):
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        f"Logging configured for {settings.environment} "
        f"({'json' if settings.json_output else 'text'}, "
        f"{logging.getLevelName(settings.level)})"
    )
    return file_handler


# Imported first thing in main.py
_file_handler = configure_logging(LogSettings.from_env())


def shutdown_logging() -> None:
    logging.getLogger(__name__).info("Closing log file handler")
    _file_handler.close()
