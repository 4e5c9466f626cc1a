"""
Certificate lifecycle rules.

Status is derived from the record's dates and the certificate type's warning
period, never copied from upload input. Expiry dates are computed with
calendar-month arithmetic so a 12-month certificate issued on 31 January
expires on 31 January of the following year.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from dateutil.relativedelta import relativedelta

from compliance_app.models import CertificateRecord, CertificateStatus, CertificateType, ComplianceStatus

DEFAULT_WARNING_DAYS = 30

_COMPLIANCE_BY_STATUS = {
    CertificateStatus.ACTIVE: ComplianceStatus.COMPLIANT,
    CertificateStatus.EXPIRING_SOON: ComplianceStatus.EXPIRING_SOON,
    CertificateStatus.EXPIRED: ComplianceStatus.NON_COMPLIANT,
    CertificateStatus.REGISTERED: ComplianceStatus.PENDING,
}


def add_months(start: date, months: int) -> date:
    """Calendar-month addition; the day is clamped to the target month's length."""

    return start + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def effective_issue_date(
    issue_date: date | None,
    completion_date: date | None = None,
    training_date: date | None = None,
) -> date | None:
    return issue_date or completion_date or training_date


@dataclass(frozen=True)
class StatusEvaluation:
    status: CertificateStatus
    compliance_status: ComplianceStatus
    expiry_date: date | None


class StatusEngine:
    """Derive certificate status and compliance status from dates."""

    def __init__(
        self,
        *,
        default_warning_days: int = DEFAULT_WARNING_DAYS,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.default_warning_days = default_warning_days
        self._clock = clock or date.today

    def today(self) -> date:
        current = self._clock()
        return current.date() if isinstance(current, datetime) else current

    def compute_status(
        self,
        issue_date: date | None,
        expiry_date: date | None,
        now: date | None = None,
        *,
        warning_days: int | None = None,
    ) -> CertificateStatus:
        if issue_date is None:
            return CertificateStatus.REGISTERED
        if expiry_date is None:
            return CertificateStatus.ACTIVE
        today = now or self.today()
        if today >= expiry_date:
            return CertificateStatus.EXPIRED
        window = self.default_warning_days if warning_days is None else warning_days
        if (expiry_date - today).days <= window:
            return CertificateStatus.EXPIRING_SOON
        return CertificateStatus.ACTIVE

    def compute_compliance_status(
        self,
        status: CertificateStatus,
        certificate_type: CertificateType | None = None,
    ) -> ComplianceStatus:
        if (
            status == CertificateStatus.REGISTERED
            and certificate_type is not None
            and certificate_type.is_recurrent is False
            and not certificate_type.is_mandatory
        ):
            return ComplianceStatus.EXEMPT
        return _COMPLIANCE_BY_STATUS[status]

    def compute_expiry(self, issue_date: date | None, validity_months: int | None) -> date | None:
        if issue_date is None or not validity_months:
            return None
        return add_months(issue_date, validity_months)

    def evaluate(
        self,
        *,
        issue_date: date | None,
        completion_date: date | None = None,
        training_date: date | None = None,
        expiry_date: date | None = None,
        certificate_type: CertificateType | None = None,
        now: date | None = None,
    ) -> StatusEvaluation:
        """Full evaluation: effective issue date, derived expiry, status, compliance."""

        issued = effective_issue_date(issue_date, completion_date, training_date)
        validity = certificate_type.validity_months if certificate_type is not None else None
        expiry = expiry_date or self.compute_expiry(issued, validity)
        warning_days = certificate_type.warning_days if certificate_type is not None else None
        status = self.compute_status(issued, expiry, now, warning_days=warning_days)
        return StatusEvaluation(
            status=status,
            compliance_status=self.compute_compliance_status(status, certificate_type),
            expiry_date=expiry,
        )

    def apply(
        self,
        record: CertificateRecord,
        certificate_type: CertificateType | None = None,
        now: date | None = None,
    ) -> bool:
        """
        Recompute ``record`` in place. Returns True when status, compliance or
        expiry changed.
        """

        evaluation = self.evaluate(
            issue_date=record.issue_date,
            completion_date=record.completion_date,
            training_date=record.training_date,
            expiry_date=record.expiry_date,
            certificate_type=certificate_type or record.certificate_type,
            now=now,
        )
        changed = (
            record.status != evaluation.status
            or record.compliance_status != evaluation.compliance_status
            or record.expiry_date != evaluation.expiry_date
        )
        record.status = evaluation.status
        record.compliance_status = evaluation.compliance_status
        record.expiry_date = evaluation.expiry_date
        return changed
