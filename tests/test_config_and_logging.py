import json
import logging

import pytest

from compliance_app.utils.logging_config import JSONFormatter
from config.validation import validate_and_exit, validate_environment


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("IMPORTER_CERTIFICATE_PROVIDER_CODE", "IMPORTER_DEFAULT_SYNC_MODE", "SECRET_KEY", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_development_environment_needs_nothing(clean_env):
    assert validate_environment("development") == (True, [])


def test_importer_settings_are_checked_everywhere(clean_env):
    clean_env.setenv("IMPORTER_CERTIFICATE_PROVIDER_CODE", "glc-01")
    clean_env.setenv("IMPORTER_DEFAULT_SYNC_MODE", "update-only")

    is_valid, errors = validate_environment("testing")

    assert is_valid is False
    assert errors == ["IMPORTER_CERTIFICATE_PROVIDER_CODE must be 2-10 letters or digits (got 'glc-01')."]


def test_production_requires_secret_and_database(clean_env):
    clean_env.setenv("SECRET_KEY", "your-secret-key")

    is_valid, errors = validate_environment("production")

    assert is_valid is False
    assert len(errors) == 2
    assert errors[1] == "DATABASE_URL is required in production."


def test_validate_and_exit_stops_startup(clean_env, capsys):
    clean_env.setenv("IMPORTER_DEFAULT_SYNC_MODE", "append")

    with pytest.raises(SystemExit) as excinfo:
        validate_and_exit("development")

    assert excinfo.value.code == 1
    assert "IMPORTER_DEFAULT_SYNC_MODE must be one of: replace, merge, update_only" in capsys.readouterr().err


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("app", logging.INFO, __file__, 10, "Import batch completed", (), None)
    record.import_batch_id = "20240601080000_abcd1234"
    record.import_counts = {"created": 2}

    payload = json.loads(JSONFormatter(app_name="Compliance Importer").format(record))

    assert payload["message"] == "Import batch completed"
    assert payload["level"] == "INFO"
    assert payload["app"] == "Compliance Importer"
    assert payload["import_batch_id"] == "20240601080000_abcd1234"
    assert payload["import_counts"] == {"created": 2}
    assert "version" not in payload
