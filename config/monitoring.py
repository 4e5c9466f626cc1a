# config/monitoring.py
"""Logging settings consumed by ``compliance_app.utils.logging_config``."""

import os

from .base import env_flag, env_int


class MonitoringConfig:
    APP_NAME = os.environ.get("APP_NAME", "Compliance Importer")
    APP_VERSION = os.environ.get("APP_VERSION", "0.1.0")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")  # json | text
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    LOG_FILE_NAME = os.environ.get("LOG_FILE_NAME", "compliance.log")
    LOG_FILE_MAX_BYTES = env_int("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024, minimum=1024)
    LOG_FILE_BACKUP_COUNT = env_int("LOG_FILE_BACKUP_COUNT", 10, minimum=0)

    ENABLE_CONSOLE_LOGGING = env_flag("ENABLE_CONSOLE_LOGGING", default=True)
    ENABLE_FILE_LOGGING = env_flag("ENABLE_FILE_LOGGING", default=True)


class DevelopmentMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    LOG_FORMAT = "text"


class ProductionMonitoringConfig(MonitoringConfig):
    # Importer runs are batch jobs; the scheduler collects stdout.
    ENABLE_FILE_LOGGING = env_flag("ENABLE_FILE_LOGGING", default=False)


class TestingMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"
    ENABLE_CONSOLE_LOGGING = False
    ENABLE_FILE_LOGGING = False
