# config/base.py
import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

_TRUE = {"1", "true", "yes", "on", "y"}
_FALSE = {"0", "false", "no", "off", "n"}

SYNC_MODES = ("replace", "merge", "update_only")


def env_flag(name, default=False):
    """Read a boolean environment variable; unrecognised values keep the default."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    token = raw.strip().lower()
    if token in _TRUE:
        return True
    if token in _FALSE:
        return False
    return default


def env_int(name, default, *, minimum=None):
    raw = (os.environ.get(name) or "").strip()
    if not raw.lstrip("-").isdigit():
        return default
    number = int(raw)
    if minimum is not None and number < minimum:
        return default
    return number


def env_sync_mode(name, default="merge"):
    token = (os.environ.get(name) or "").strip().lower().replace("-", "_")
    return token if token in SYNC_MODES else default


def _sqlite_connect_args():
    return {"connect_args": {"check_same_thread": False, "timeout": 5}}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Importer: status derivation
    IMPORTER_ENABLED = env_flag("IMPORTER_ENABLED", default=True)
    IMPORTER_DEFAULT_WARNING_DAYS = env_int("IMPORTER_DEFAULT_WARNING_DAYS", 30, minimum=0)
    IMPORTER_AUTO_TYPE_WARNING_DAYS = env_int("IMPORTER_AUTO_TYPE_WARNING_DAYS", 90, minimum=0)
    IMPORTER_DEFAULT_VALIDITY_MONTHS = env_int("IMPORTER_DEFAULT_VALIDITY_MONTHS", 36, minimum=1)

    # Importer: certificate numbering
    IMPORTER_CERTIFICATE_PROVIDER_CODE = (os.environ.get("IMPORTER_CERTIFICATE_PROVIDER_CODE") or "GLC").strip().upper()
    IMPORTER_GENERATE_CERTIFICATE_NUMBERS = env_flag("IMPORTER_GENERATE_CERTIFICATE_NUMBERS", default=True)

    # Importer: synchronisation and limits
    IMPORTER_DEFAULT_SYNC_MODE = env_sync_mode("IMPORTER_DEFAULT_SYNC_MODE")
    IMPORTER_SOFT_DELETE = env_flag("IMPORTER_SOFT_DELETE", default=True)
    IMPORTER_MAX_UPLOAD_MB = env_int("IMPORTER_MAX_UPLOAD_MB", 25, minimum=1)
    IMPORTER_REPORT_MAX_ERRORS = env_int("IMPORTER_REPORT_MAX_ERRORS", 20, minimum=1)
    IMPORTER_REPORT_MAX_WARNINGS = env_int("IMPORTER_REPORT_MAX_WARNINGS", 10, minimum=1)


class DevelopmentConfig(Config):
    DEBUG = True

    _instance_dir = PROJECT_ROOT / "instance"
    _instance_dir.mkdir(exist_ok=True)

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{(_instance_dir / 'compliance_dev.db').as_posix()}"
    )
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = _sqlite_connect_args()


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-for-testing-only"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_connect_args()
    IMPORTER_ENABLED = True


class ProductionConfig(Config):
    DEBUG = False
    # Heroku-style URLs still use the legacy scheme SQLAlchemy 2 rejects.
    SQLALCHEMY_DATABASE_URI = (os.environ.get("DATABASE_URL") or "").replace("postgres://", "postgresql://", 1) or None
