"""
Application logging setup driven by the ``MonitoringConfig`` keys.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from flask import Flask
from flask.logging import default_handler

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys() | {"message", "asctime"}
)

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, including structured ``extra`` fields."""

    def __init__(self, *, app_name: str | None = None, app_version: str | None = None) -> None:
        super().__init__()
        self.app_name = app_name
        self.app_version = app_version

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if self.app_name:
            payload["app"] = self.app_name
        if self.app_version:
            payload["version"] = self.app_version
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(app: Flask) -> logging.Formatter:
    if str(app.config.get("LOG_FORMAT", "json")).lower() == "json":
        return JSONFormatter(app_name=app.config.get("APP_NAME"), app_version=app.config.get("APP_VERSION"))
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app: Flask) -> None:
    """Attach console and rotating-file handlers to ``app.logger``."""

    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    for handler in list(app.logger.handlers):
        if getattr(handler, "_compliance_handler", False):
            app.logger.removeHandler(handler)

    app.logger.removeHandler(default_handler)

    formatter = _build_formatter(app)
    handlers: list[logging.Handler] = []

    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(log_dir, app.config.get("LOG_FILE_NAME", "compliance.log")),
                maxBytes=int(app.config.get("LOG_FILE_MAX_BYTES", 10485760)),
                backupCount=int(app.config.get("LOG_FILE_BACKUP_COUNT", 10)),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        handler._compliance_handler = True  # type: ignore[attr-defined]
        app.logger.addHandler(handler)

    app.logger.setLevel(level)
    app.logger.info(
        "Logging configured",
        extra={"log_format": app.config.get("LOG_FORMAT"), "log_handlers": len(handlers)},
    )
