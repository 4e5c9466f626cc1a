# config/validation.py

"""
Startup checks for the importer's environment variables.

Every check is run so operators see all problems at once rather than one per
restart.
"""

import os
import re
import sys
from typing import Callable, List, Optional, Tuple

from .base import SYNC_MODES

_PROVIDER_CODE_PATTERN = re.compile(r"^[A-Z0-9]{2,10}$")
_PLACEHOLDER_SECRETS = {"", "your-secret-key", "your_secret_key", "dev-secret-key-change-in-production"}

Check = Callable[[], Optional[str]]


def _check_provider_code() -> Optional[str]:
    value = os.environ.get("IMPORTER_CERTIFICATE_PROVIDER_CODE")
    if value is None or _PROVIDER_CODE_PATTERN.match(value.strip().upper()):
        return None
    return f"IMPORTER_CERTIFICATE_PROVIDER_CODE must be 2-10 letters or digits (got {value!r})."


def _check_sync_mode() -> Optional[str]:
    value = os.environ.get("IMPORTER_DEFAULT_SYNC_MODE")
    if value is None or value.strip().lower().replace("-", "_") in SYNC_MODES:
        return None
    return f"IMPORTER_DEFAULT_SYNC_MODE must be one of: {', '.join(SYNC_MODES)} (got {value!r})."


def _check_secret_key() -> Optional[str]:
    if os.environ.get("SECRET_KEY", "").strip() not in _PLACEHOLDER_SECRETS:
        return None
    return "SECRET_KEY must be set to a non-default value in production."


def _check_database_url() -> Optional[str]:
    if os.environ.get("DATABASE_URL"):
        return None
    return "DATABASE_URL is required in production."


COMMON_CHECKS: Tuple[Check, ...] = (_check_provider_code, _check_sync_mode)
PRODUCTION_CHECKS: Tuple[Check, ...] = (_check_secret_key, _check_database_url)


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Run the startup checks for ``flask_env`` (defaults to ``FLASK_ENV``).

    Returns ``(is_valid, errors)``.
    """
    flask_env = flask_env or os.environ.get("FLASK_ENV", "development")
    checks = COMMON_CHECKS + (PRODUCTION_CHECKS if flask_env == "production" else ())
    errors = [message for message in (check() for check in checks) if message]
    return not errors, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Print every validation error to stderr and exit non-zero when any check fails."""
    is_valid, errors = validate_environment(flask_env)
    if is_valid:
        return

    print("Environment validation failed:", file=sys.stderr)
    for number, error in enumerate(errors, 1):
        print(f"  {number}. {error}", file=sys.stderr)
    print("Fix the variables above (or your .env file) and restart.", file=sys.stderr)
    sys.exit(1)
