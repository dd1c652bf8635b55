"""
Process-wide logging.

Every record carries the current request's trace id (``%(trace_id)s``), set by
the HTTP middleware. Console output is always on; a size-rotated file is added
when ``LOG_FILE`` is configured. Timestamps follow ``LOG_TZ``.
"""

import logging
import os
import sys
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler

import pytz
from fastapi import FastAPI

from configs import app_config

trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

# Third-party loggers that would duplicate the proxy's own per-attempt lines
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def trace_id_generator() -> str:
    return uuid.uuid4().hex


class TraceIdFilter(logging.Filter):
    def filter(self, record):
        record.trace_id = trace_id_var.get() or "-"
        return True


def tz_converter(tz_name: str) -> Callable[[float | None], tuple]:
    timezone = pytz.timezone(tz_name)

    def convert(seconds):
        return datetime.fromtimestamp(seconds, tz=timezone).timetuple()

    return convert


def build_handlers() -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if app_config.LOG_FILE:
        log_dir = os.path.dirname(app_config.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=app_config.LOG_FILE,
                maxBytes=app_config.LOG_FILE_MAX_SIZE * 1024 * 1024,
                backupCount=app_config.LOG_FILE_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    formatter = logging.Formatter(app_config.LOG_FORMAT, app_config.LOG_DATEFORMAT)
    if app_config.LOG_TZ:
        formatter.converter = tz_converter(app_config.LOG_TZ)

    for handler in handlers:
        handler.addFilter(TraceIdFilter())
        handler.setFormatter(formatter)
    return handlers


def init_app(app: FastAPI):
    logging.basicConfig(level=app_config.LOG_LEVEL, handlers=build_handlers(), force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
