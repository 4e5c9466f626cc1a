"""
Certificate type import.
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from compliance_app.models import CertificateType

from ...contracts.certificate_types import CERTIFICATE_TYPE_CONTRACT
from ...errors import ValidationError
from ..context import BatchContext
from ..normalize import NormalizedRow
from ..resolver import CERTIFICATE_TYPE
from ..values import clean_text, parse_bool, parse_int
from .base import Changes, ImportStrategy, Payload, References

_FLAGS = ("is_mandatory", "is_recurrent", "is_active")


class CertificateTypeStrategy(ImportStrategy):
    contract = CERTIFICATE_TYPE_CONTRACT

    def prepare(self, row: NormalizedRow, ctx: BatchContext) -> Payload:
        code = clean_text(row.get("code"))
        payload: Payload = {
            "code": code.upper() if code else None,
            "name": clean_text(row.get("name")),
            "category": clean_text(row.get("category")),
            "description": clean_text(row.get("description")),
            "validity_months": parse_int(row.get("validity_months")),
            "warning_days": parse_int(row.get("warning_days")),
        }
        for flag in _FLAGS:
            value = parse_bool(row.get(flag))
            if value is None and clean_text(row.get(flag)):
                ctx.warn(f"Unrecognised value '{row.get(flag)}' for {flag}; default kept")
            payload[flag] = value

        if payload["validity_months"] is not None and payload["validity_months"] <= 0:
            ctx.warn(f"Ignoring non-positive validity period {payload['validity_months']}")
            payload["validity_months"] = None
        if payload["warning_days"] is not None and payload["warning_days"] < 0:
            raise ValidationError("warning_days cannot be negative", field="warning_days")
        return payload

    def natural_key(self, payload: Payload) -> str | None:
        if payload["code"]:
            return payload["code"]
        return payload["name"].casefold() if payload["name"] else None

    def find_existing(self, payload: Payload, refs: References, ctx: BatchContext) -> CertificateType | None:
        return ctx.resolver.find_certificate_type(code=payload["code"], name=payload["name"], substring=False)

    def current_values(self, entity: CertificateType, refs: References) -> Payload:
        return {
            "name": entity.name,
            "category": entity.category,
            "description": entity.description,
            "validity_months": entity.validity_months,
            "warning_days": entity.warning_days,
            "is_mandatory": entity.is_mandatory,
            "is_recurrent": entity.is_recurrent,
            "is_active": entity.is_active,
        }

    def incoming_values(self, payload: Payload, refs: References, ctx: BatchContext, entity: Any) -> Payload:
        return {field_name: payload[field_name] for field_name in self.current_values(entity, refs)}

    def apply_changes(
        self,
        entity: CertificateType,
        changes: Changes,
        payload: Payload,
        refs: References,
        ctx: BatchContext,
    ) -> None:
        renamed = "name" in changes
        if renamed:
            ctx.resolver.forget(CERTIFICATE_TYPE, entity)
        self._assign(entity, changes, payload)
        if renamed:
            ctx.resolver.remember(CERTIFICATE_TYPE, entity)
        ctx.count_entity(CERTIFICATE_TYPE, "updated")

    def create(self, payload: Payload, refs: References, ctx: BatchContext) -> CertificateType:
        if payload["code"] and not ctx.resolver.code_available(CERTIFICATE_TYPE, payload["code"]):
            raise ValidationError(f"Certificate type code '{payload['code']}' is already in use", field="code")
        certificate_type = CertificateType(
            name=payload["name"],
            category=payload["category"],
            description=payload["description"],
            validity_months=payload["validity_months"],
            warning_days=(
                payload["warning_days"] if payload["warning_days"] is not None else ctx.default_warning_days
            ),
            is_mandatory=bool(payload["is_mandatory"]),
            is_recurrent=True if payload["is_recurrent"] is None else payload["is_recurrent"],
            is_active=True if payload["is_active"] is None else payload["is_active"],
        )
        ctx.resolver.assign_code(CERTIFICATE_TYPE, certificate_type, payload["code"])
        self._persist(certificate_type, ctx)
        ctx.resolver.remember(CERTIFICATE_TYPE, certificate_type)
        ctx.count_entity(CERTIFICATE_TYPE, "created")
        return certificate_type

    def describe(self, entity: CertificateType) -> str | None:
        return f"{entity.code} {entity.name}"

    def entity_key(self, entity: CertificateType) -> str:
        return entity.code

    def active_entities(self, session: Session) -> Iterable[CertificateType]:
        return session.scalars(
            select(CertificateType).where(CertificateType.is_active.is_(True)).order_by(CertificateType.id)
        ).all()

    def deactivate(self, entity: CertificateType) -> None:
        entity.is_active = False
