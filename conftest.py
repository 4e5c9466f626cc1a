# conftest.py

import os
from datetime import date

import pytest

# FLASK_ENV must be set before app.py is imported so it loads TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import app as flask_app  # noqa: E402
from compliance_app.importer.pipeline import ImportCoordinator, StatusEngine  # noqa: E402
from compliance_app.models import CertificateType, Department, Employee, EmployeeStatus, db  # noqa: E402

FIXED_TODAY = date(2024, 6, 1)

TEST_SETTINGS = {
    "TESTING": True,
    "ENABLE_FILE_LOGGING": False,
    "ENABLE_CONSOLE_LOGGING": False,
    "IMPORTER_ENABLED": True,
    "IMPORTER_DEFAULT_WARNING_DAYS": 30,
    "IMPORTER_AUTO_TYPE_WARNING_DAYS": 90,
    "IMPORTER_DEFAULT_VALIDITY_MONTHS": 36,
    "IMPORTER_CERTIFICATE_PROVIDER_CODE": "GLC",
    "IMPORTER_GENERATE_CERTIFICATE_NUMBERS": True,
    "IMPORTER_DEFAULT_SYNC_MODE": "merge",
    "IMPORTER_SOFT_DELETE": True,
    "IMPORTER_MAX_UPLOAD_MB": 25,
    "IMPORTER_REPORT_MAX_ERRORS": 20,
    "IMPORTER_REPORT_MAX_WARNINGS": 10,
}


@pytest.fixture(scope="function")
def app():
    """The application with importer settings pinned and a fresh in-memory schema"""
    flask_app.config.update(TEST_SETTINGS)

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def status_engine():
    """Status engine pinned to a fixed date"""
    return StatusEngine(default_warning_days=30, clock=lambda: FIXED_TODAY)


@pytest.fixture
def coordinator(app, status_engine):
    """Import coordinator bound to the test session and a fixed clock"""
    return ImportCoordinator(db.session, status_engine=status_engine, config=app.config)


@pytest.fixture
def operations_department():
    department = Department(code="OPS", name="Operations", is_active=True)
    db.session.add(department)
    db.session.commit()
    return department


@pytest.fixture
def sample_employee(operations_department):
    employee = Employee(
        employee_id="EMP001",
        nip="EMP001",
        name="Siti Rahma",
        department_id=operations_department.id,
        position="Supervisor",
        status=EmployeeStatus.ACTIVE,
    )
    db.session.add(employee)
    db.session.commit()
    return employee


@pytest.fixture
def safety_type():
    certificate_type = CertificateType(
        code="K3UMUM",
        name="K3 Umum",
        category="Safety",
        validity_months=12,
        warning_days=30,
        is_mandatory=True,
        is_recurrent=True,
        is_active=True,
    )
    db.session.add(certificate_type)
    db.session.commit()
    return certificate_type
