"""
Periodic recomputation of stored certificate statuses.

Status is a function of the current date, so records drift from ACTIVE to
EXPIRING_SOON to EXPIRED without any upload touching them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from flask import current_app, has_app_context
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from compliance_app.models import CertificateRecord, CertificateStatus, ComplianceStatus, db

from ..metrics import record_status_transitions
from .status import StatusEngine


@dataclass(frozen=True)
class StatusTransition:
    record_id: int
    certificate_number: str | None
    previous_status: CertificateStatus | None
    status: CertificateStatus
    previous_compliance: ComplianceStatus | None
    compliance_status: ComplianceStatus


@dataclass
class RefreshSummary:
    as_of: date
    records_checked: int = 0
    transitions: list[StatusTransition] = field(default_factory=list)

    @property
    def records_changed(self) -> int:
        return len(self.transitions)

    def by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for transition in self.transitions:
            counts[transition.status.value] = counts.get(transition.status.value, 0) + 1
        return counts


def refresh_certificate_statuses(
    session: Session | None = None,
    *,
    as_of: date | None = None,
    status_engine: StatusEngine | None = None,
    commit: bool = True,
) -> RefreshSummary:
    """Recompute status/compliance for every stored record and commit the changes."""

    session = session or db.session
    engine = status_engine or StatusEngine()
    today = as_of or engine.today()
    summary = RefreshSummary(as_of=today)

    records = session.scalars(
        select(CertificateRecord).options(selectinload(CertificateRecord.certificate_type)).order_by(CertificateRecord.id)
    )
    for record in records:
        summary.records_checked += 1
        previous_status = record.status
        previous_compliance = record.compliance_status
        if not engine.apply(record, now=today):
            continue
        if record.status == previous_status and record.compliance_status == previous_compliance:
            # Only a derived expiry date was filled in.
            continue
        summary.transitions.append(
            StatusTransition(
                record_id=record.id,
                certificate_number=record.certificate_number,
                previous_status=previous_status,
                status=record.status,
                previous_compliance=previous_compliance,
                compliance_status=record.compliance_status,
            )
        )

    if commit:
        session.commit()
    record_status_transitions(summary.transitions)
    if has_app_context():
        current_app.logger.info(
            "Certificate statuses refreshed",
            extra={
                "refresh_as_of": today.isoformat(),
                "refresh_records_checked": summary.records_checked,
                "refresh_records_changed": summary.records_changed,
            },
        )
    return summary
