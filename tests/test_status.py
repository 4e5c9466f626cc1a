from datetime import date

import pytest

from compliance_app.importer.pipeline.status import StatusEngine, add_months, effective_issue_date, months_between
from compliance_app.models import CertificateRecord, CertificateStatus, CertificateType, ComplianceStatus

TODAY = date(2024, 6, 1)


@pytest.fixture
def engine():
    return StatusEngine(default_warning_days=30, clock=lambda: TODAY)


def _certificate_type(**overrides):
    values = dict(
        code="K3UMUM",
        name="K3 Umum",
        validity_months=12,
        warning_days=30,
        is_mandatory=True,
        is_recurrent=True,
        is_active=True,
    )
    values.update(overrides)
    return CertificateType(**values)


def test_month_arithmetic_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 12) == date(2024, 1, 31)
    assert months_between(date(2024, 1, 1), date(2026, 1, 1)) == 24


def test_effective_issue_date_falls_back_to_completion_then_training():
    assert effective_issue_date(None, date(2024, 2, 2), date(2024, 1, 1)) == date(2024, 2, 2)
    assert effective_issue_date(None, None, date(2024, 1, 1)) == date(2024, 1, 1)
    assert effective_issue_date(None) is None


@pytest.mark.parametrize(
    "issue_date, expiry_date, expected",
    [
        (None, None, CertificateStatus.REGISTERED),
        (None, date(2025, 1, 1), CertificateStatus.REGISTERED),
        (date(2024, 1, 1), None, CertificateStatus.ACTIVE),
        (date(2023, 6, 1), date(2024, 6, 1), CertificateStatus.EXPIRED),
        (date(2023, 1, 1), date(2024, 1, 1), CertificateStatus.EXPIRED),
        (date(2023, 7, 1), date(2024, 6, 30), CertificateStatus.EXPIRING_SOON),
        (date(2023, 7, 1), date(2024, 7, 1), CertificateStatus.EXPIRING_SOON),
        (date(2023, 7, 2), date(2024, 7, 2), CertificateStatus.ACTIVE),
    ],
)
def test_compute_status_boundaries(engine, issue_date, expiry_date, expected):
    assert engine.compute_status(issue_date, expiry_date) == expected


def test_type_warning_period_overrides_default(engine):
    assert engine.compute_status(date(2023, 1, 1), date(2024, 8, 1), warning_days=90) == CertificateStatus.EXPIRING_SOON
    assert engine.compute_status(date(2023, 1, 1), date(2024, 8, 1)) == CertificateStatus.ACTIVE


def test_compliance_mapping(engine):
    assert engine.compute_compliance_status(CertificateStatus.ACTIVE) == ComplianceStatus.COMPLIANT
    assert engine.compute_compliance_status(CertificateStatus.EXPIRING_SOON) == ComplianceStatus.EXPIRING_SOON
    assert engine.compute_compliance_status(CertificateStatus.EXPIRED) == ComplianceStatus.NON_COMPLIANT
    assert engine.compute_compliance_status(CertificateStatus.REGISTERED) == ComplianceStatus.PENDING


def test_optional_one_off_certificates_without_dates_are_exempt(engine):
    optional = _certificate_type(is_mandatory=False, is_recurrent=False)

    assert engine.compute_compliance_status(CertificateStatus.REGISTERED, optional) == ComplianceStatus.EXEMPT
    assert engine.compute_compliance_status(CertificateStatus.ACTIVE, optional) == ComplianceStatus.COMPLIANT


def test_evaluate_derives_expiry_from_validity(engine):
    evaluation = engine.evaluate(issue_date=date(2023, 6, 15), certificate_type=_certificate_type())

    assert evaluation.expiry_date == date(2024, 6, 15)
    assert evaluation.status == CertificateStatus.EXPIRING_SOON
    assert evaluation.compliance_status == ComplianceStatus.EXPIRING_SOON


def test_evaluate_keeps_explicit_expiry(engine):
    evaluation = engine.evaluate(
        issue_date=date(2024, 1, 1),
        expiry_date=date(2029, 1, 1),
        certificate_type=_certificate_type(),
    )

    assert evaluation.expiry_date == date(2029, 1, 1)
    assert evaluation.status == CertificateStatus.ACTIVE


def test_evaluate_without_validity_never_expires(engine):
    evaluation = engine.evaluate(
        issue_date=None,
        completion_date=date(2020, 1, 1),
        certificate_type=_certificate_type(validity_months=None),
    )

    assert evaluation.expiry_date is None
    assert evaluation.status == CertificateStatus.ACTIVE


def test_apply_reports_whether_anything_changed(engine):
    record = CertificateRecord(
        issue_date=date(2023, 1, 10),
        status=CertificateStatus.ACTIVE,
        compliance_status=ComplianceStatus.COMPLIANT,
    )
    certificate_type = _certificate_type()

    assert engine.apply(record, certificate_type) is True
    assert record.expiry_date == date(2024, 1, 10)
    assert record.status == CertificateStatus.EXPIRED
    assert record.compliance_status == ComplianceStatus.NON_COMPLIANT
    assert engine.apply(record, certificate_type) is False
