"""
Certificate record import.

Rows reference an existing employee (never created here) and a certificate
type (created on the fly when allowed). Status, compliance status and a
missing expiry date are derived; an uploaded status is stored for reference
only and flagged when it disagrees with the derived one.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import func, select

from compliance_app.models import CertificateRecord

from ...contracts.certificate_records import CERTIFICATE_RECORD_CONTRACT
from ...errors import ResolutionError
from ..context import BatchContext
from ..normalize import NormalizedRow
from ..status import StatusEvaluation, effective_issue_date
from ..values import clean_identifier, clean_text, parse_int, parse_number
from .base import Changes, ImportStrategy, Payload, References

CERTIFICATE_RECORD = "certificate_record"

_TEXT_FIELDS = ("issuer", "training_provider", "location", "instructor", "notes")
_NUMBER_FIELDS = ("training_hours", "score", "cost")
_DATE_FIELDS = ("training_date", "completion_date", "issue_date", "expiry_date")

REPORTED_STATUS_ALIASES = {
    "active": "active",
    "aktif": "active",
    "valid": "active",
    "berlaku": "active",
    "expiring": "expiring_soon",
    "expiring_soon": "expiring_soon",
    "akan_expired": "expiring_soon",
    "expired": "expired",
    "kadaluarsa": "expired",
    "kedaluwarsa": "expired",
    "registered": "registered",
    "terdaftar": "registered",
    "pending": "registered",
}


def _status_token(value: str) -> str:
    return value.strip().lower().replace(" ", "_").replace("-", "_")


class CertificateRecordStrategy(ImportStrategy):
    contract = CERTIFICATE_RECORD_CONTRACT
    reconcilable = False

    def prepare(self, row: NormalizedRow, ctx: BatchContext) -> Payload:
        code = clean_text(row.get("certificate_type_code"))
        payload: Payload = {
            "employee_id": clean_identifier(row.get("employee_id")),
            "employee_name": clean_text(row.get("employee_name")),
            "department": clean_text(row.get("department")),
            "position": clean_text(row.get("position")),
            "certificate_type_code": code.upper() if code else None,
            "certificate_type_name": clean_text(row.get("certificate_type_name")),
            "category": clean_text(row.get("category")),
            "certificate_number": clean_identifier(row.get("certificate_number")),
            "validity_months": parse_int(row.get("validity_months")),
            "reported_status": clean_text(row.get("status")),
        }
        for field_name in _TEXT_FIELDS:
            payload[field_name] = clean_text(row.get(field_name))
        for field_name in _NUMBER_FIELDS:
            raw_value = row.get(field_name)
            payload[field_name] = parse_number(raw_value)
            if payload[field_name] is None and clean_text(raw_value):
                ctx.warn(f"Could not parse {field_name}: {raw_value!r}")
        for field_name in _DATE_FIELDS:
            payload[field_name] = ctx.parse_date(row.get(field_name), field_name)

        payload["effective_issue_date"] = effective_issue_date(
            payload["issue_date"], payload["completion_date"], payload["training_date"]
        )
        issued = payload["effective_issue_date"]
        if issued and payload["expiry_date"] and payload["expiry_date"] < issued:
            ctx.warn(f"Expiry date {payload['expiry_date'].isoformat()} precedes issue date {issued.isoformat()}")
        return payload

    def natural_key(self, payload: Payload) -> str | None:
        if payload["certificate_number"]:
            return payload["certificate_number"].upper()
        type_ref = payload["certificate_type_code"] or (payload["certificate_type_name"] or "").casefold()
        issued = payload["effective_issue_date"]
        return f"{payload['employee_id']}|{type_ref}|{issued.isoformat() if issued else '-'}"

    def resolve(self, payload: Payload, ctx: BatchContext) -> References:
        employee = ctx.resolver.resolve_employee(payload["employee_id"]).entity
        certificate_type = ctx.resolver.find_certificate_type(
            code=payload["certificate_type_code"],
            name=payload["certificate_type_name"],
        )
        return {"employee": employee, "certificate_type": certificate_type}

    def complete_references(self, payload: Payload, refs: References, ctx: BatchContext) -> None:
        if refs["certificate_type"] is None:
            refs["certificate_type"] = ctx.resolver.resolve_certificate_type(
                code=payload["certificate_type_code"],
                name=payload["certificate_type_name"],
                category=payload["category"],
                validity_months=payload["validity_months"],
                issue_date=payload["effective_issue_date"],
                expiry_date=payload["expiry_date"],
            ).entity
        self._update_holder(payload, refs["employee"], ctx)

    def _update_holder(self, payload: Payload, employee: Any, ctx: BatchContext) -> None:
        department = None
        if payload["department"]:
            try:
                department = ctx.resolver.resolve_department(payload["department"]).entity
            except ResolutionError as exc:
                ctx.warn(f"{exc.message}; employee department left unchanged")

        employee_changes = ctx.resolver.update_employee_attributes(
            employee,
            name=payload["employee_name"],
            position=payload["position"],
            department=department,
        )
        if employee_changes:
            ctx.warn(f"Employee {employee.employee_id} updated: {', '.join(employee_changes)}")

    def find_existing(self, payload: Payload, refs: References, ctx: BatchContext) -> CertificateRecord | None:
        if payload["certificate_number"]:
            return ctx.session.scalars(
                select(CertificateRecord)
                .where(func.upper(CertificateRecord.certificate_number) == payload["certificate_number"].upper())
                .limit(1)
            ).first()

        employee = refs["employee"]
        certificate_type = refs["certificate_type"]
        if employee.id is None or certificate_type is None or certificate_type.id is None:
            return None
        issued = payload["effective_issue_date"]
        stmt = select(CertificateRecord).where(
            CertificateRecord.employee_id == employee.id,
            CertificateRecord.certificate_type_id == certificate_type.id,
            CertificateRecord.issue_date.is_(None) if issued is None else CertificateRecord.issue_date == issued,
        )
        return ctx.session.scalars(stmt.order_by(CertificateRecord.id.desc()).limit(1)).first()

    # -- derived state --------------------------------------------------------------

    def _evaluate(self, payload: Payload, refs: References, ctx: BatchContext, entity: Any) -> StatusEvaluation:
        certificate_type = refs["certificate_type"]
        issued: date | None = payload["effective_issue_date"] or (entity.issue_date if entity else None)
        expiry = payload["expiry_date"]
        if expiry is None and entity is not None and entity.expiry_date and issued == entity.issue_date:
            expiry = entity.expiry_date
        return ctx.status_engine.evaluate(issue_date=issued, expiry_date=expiry, certificate_type=certificate_type)

    def _check_reported_status(self, payload: Payload, evaluation: StatusEvaluation, ctx: BatchContext) -> None:
        reported = payload["reported_status"]
        if not reported:
            return
        token = _status_token(reported)
        expected = REPORTED_STATUS_ALIASES.get(token, token)
        if expected != evaluation.status.value:
            ctx.warn(f"Reported status '{reported}' differs from computed status '{evaluation.status.value}'")

    # -- update ---------------------------------------------------------------------

    def current_values(self, entity: CertificateRecord, refs: References) -> Payload:
        values: Payload = {
            "employee": entity.employee.employee_id if entity.employee is not None else None,
            "certificate_type": entity.certificate_type.code if entity.certificate_type is not None else None,
            "certificate_number": entity.certificate_number,
            "training_date": entity.training_date,
            "completion_date": entity.completion_date,
            "issue_date": entity.issue_date,
            "expiry_date": entity.expiry_date,
            "status": entity.status,
            "compliance_status": entity.compliance_status,
            "reported_status": entity.reported_status,
        }
        for field_name in _TEXT_FIELDS + _NUMBER_FIELDS:
            values[field_name] = getattr(entity, field_name)
        return values

    def incoming_values(self, payload: Payload, refs: References, ctx: BatchContext, entity: Any) -> Payload:
        evaluation = self._evaluate(payload, refs, ctx, entity)
        values: Payload = {
            "employee": refs["employee"].employee_id,
            "certificate_type": refs["certificate_type"].code,
            "certificate_number": payload["certificate_number"],
            "training_date": payload["training_date"],
            "completion_date": payload["completion_date"],
            "issue_date": payload["effective_issue_date"],
            "expiry_date": evaluation.expiry_date,
            "status": evaluation.status,
            "compliance_status": evaluation.compliance_status,
            "reported_status": payload["reported_status"],
        }
        for field_name in _TEXT_FIELDS + _NUMBER_FIELDS:
            values[field_name] = payload[field_name]
        return values

    def changes(self, entity: CertificateRecord, payload: Payload, refs: References, ctx: BatchContext) -> Changes:
        self._check_reported_status(payload, self._evaluate(payload, refs, ctx, entity), ctx)
        return super().changes(entity, payload, refs, ctx)

    def apply_changes(
        self,
        entity: CertificateRecord,
        changes: Changes,
        payload: Payload,
        refs: References,
        ctx: BatchContext,
    ) -> None:
        values = self.incoming_values(payload, refs, ctx, entity)
        for field_name in changes:
            if field_name == "employee":
                entity.employee = refs["employee"]
            elif field_name == "certificate_type":
                entity.certificate_type = refs["certificate_type"]
            else:
                setattr(entity, field_name, values[field_name])
        if ctx.sequence is not None:
            ctx.sequence.observe(entity.certificate_number)
        entity.source_batch_id = ctx.report.batch_id
        ctx.count_entity(CERTIFICATE_RECORD, "updated")

    # -- create ---------------------------------------------------------------------

    def _certificate_number(self, payload: Payload, ctx: BatchContext) -> str | None:
        number = payload["certificate_number"]
        if ctx.sequence is None:
            return number
        if number:
            ctx.sequence.observe(number)
            return number
        issued = payload["effective_issue_date"]
        if ctx.options.generate_certificate_numbers and issued is not None:
            return ctx.sequence.next_number(issued)
        return None

    def create(self, payload: Payload, refs: References, ctx: BatchContext) -> CertificateRecord:
        evaluation = self._evaluate(payload, refs, ctx, None)
        self._check_reported_status(payload, evaluation, ctx)
        employee = refs["employee"]
        certificate_type = refs["certificate_type"]
        record = CertificateRecord(
            employee_id=employee.id,
            certificate_type_id=certificate_type.id,
            certificate_number=self._certificate_number(payload, ctx),
            training_date=payload["training_date"],
            completion_date=payload["completion_date"],
            issue_date=payload["effective_issue_date"],
            expiry_date=evaluation.expiry_date,
            status=evaluation.status,
            compliance_status=evaluation.compliance_status,
            reported_status=payload["reported_status"],
            source_batch_id=ctx.report.batch_id,
        )
        for field_name in _TEXT_FIELDS + _NUMBER_FIELDS:
            setattr(record, field_name, payload[field_name])
        self._persist(record, ctx)
        ctx.count_entity(CERTIFICATE_RECORD, "created")
        return record

    def describe(self, entity: CertificateRecord) -> str | None:
        return entity.certificate_number
