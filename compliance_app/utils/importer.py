"""
Config accessors for the import engine.
"""

from __future__ import annotations

from typing import Tuple

from flask import current_app


def _config(app=None):
    return app.config if app is not None else current_app.config


def is_importer_enabled(app=None) -> bool:
    """True when ``IMPORTER_ENABLED`` is set."""
    return bool(_config(app).get("IMPORTER_ENABLED", False))


def get_report_limits(app=None) -> Tuple[int, int]:
    """``(max_errors, max_warnings)`` listed in rendered text reports."""
    config = _config(app)
    return int(config.get("IMPORTER_REPORT_MAX_ERRORS", 20)), int(config.get("IMPORTER_REPORT_MAX_WARNINGS", 10))


def get_max_upload_bytes(app=None) -> int:
    return int(_config(app).get("IMPORTER_MAX_UPLOAD_MB", 25)) * 1024 * 1024
