"""
Employee import: the only path that may create employees.
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from compliance_app.models import Employee, EmployeeStatus

from ...contracts.employees import EMPLOYEE_CONTRACT
from ..context import BatchContext
from ..normalize import NormalizedRow
from ..resolver import EMPLOYEE
from ..values import clean_identifier, clean_text, normalize_email, parse_bool
from .base import Changes, ImportStrategy, Payload, References


class EmployeeStrategy(ImportStrategy):
    contract = EMPLOYEE_CONTRACT

    def prepare(self, row: NormalizedRow, ctx: BatchContext) -> Payload:
        payload: Payload = {
            "employee_id": clean_identifier(row.get("employee_id")),
            "name": clean_text(row.get("name")),
            "department": clean_text(row.get("department")),
            "position": clean_text(row.get("position")),
            "phone": clean_identifier(row.get("phone")),
            "hire_date": ctx.parse_date(row.get("hire_date"), "hire_date"),
            "notes": clean_text(row.get("notes")),
            "email": None,
            "status": None,
        }
        try:
            payload["email"] = normalize_email(row.get("email"))
        except ValueError as exc:
            ctx.warn(str(exc))

        raw_status = row.get("status")
        active = parse_bool(raw_status)
        if active is None and clean_text(raw_status):
            ctx.warn(f"Unrecognised status '{raw_status}'; employee treated as active")
        if active is not None:
            payload["status"] = EmployeeStatus.ACTIVE if active else EmployeeStatus.INACTIVE
        return payload

    def natural_key(self, payload: Payload) -> str | None:
        return payload["employee_id"]

    def resolve(self, payload: Payload, ctx: BatchContext) -> References:
        reference = payload["department"]
        if not reference:
            return {"department": None}
        return {"department": ctx.resolver.find_department(code=reference, name=reference)}

    def complete_references(self, payload: Payload, refs: References, ctx: BatchContext) -> None:
        if payload["department"] and refs["department"] is None:
            refs["department"] = ctx.resolver.resolve_department(payload["department"]).entity

    def find_existing(self, payload: Payload, refs: References, ctx: BatchContext) -> Employee | None:
        return ctx.resolver.find_employee(payload["employee_id"])

    def current_values(self, entity: Employee, refs: References) -> Payload:
        return {
            "name": entity.name,
            "department": entity.department.code if entity.department is not None else None,
            "position": entity.position,
            "email": entity.email,
            "phone": entity.phone,
            "hire_date": entity.hire_date,
            "notes": entity.notes,
            "status": entity.status,
        }

    def incoming_values(self, payload: Payload, refs: References, ctx: BatchContext, entity: Any) -> Payload:
        department = refs.get("department")
        return {
            "name": payload["name"],
            "department": department.code if department is not None else None,
            "position": payload["position"],
            "email": payload["email"],
            "phone": payload["phone"],
            "hire_date": payload["hire_date"],
            "notes": payload["notes"],
            # Being present in the upload reactivates an employee unless the row says otherwise.
            "status": payload["status"] or EmployeeStatus.ACTIVE,
        }

    def apply_changes(
        self,
        entity: Employee,
        changes: Changes,
        payload: Payload,
        refs: References,
        ctx: BatchContext,
    ) -> None:
        values = self.incoming_values(payload, refs, ctx, entity)
        for field_name in changes:
            if field_name == "department":
                entity.department = refs["department"]
            else:
                setattr(entity, field_name, values[field_name])
        ctx.count_entity(EMPLOYEE, "updated")

    def create(self, payload: Payload, refs: References, ctx: BatchContext) -> Employee:
        department = refs.get("department")
        employee = Employee(
            employee_id=payload["employee_id"],
            nip=payload["employee_id"],
            name=payload["name"],
            department_id=department.id if department is not None else None,
            position=payload["position"],
            email=payload["email"],
            phone=payload["phone"],
            hire_date=payload["hire_date"],
            notes=payload["notes"],
            status=payload["status"] or EmployeeStatus.ACTIVE,
        )
        if department is not None and not ctx.dry_run:
            # In a dry run the link must stay off: the backref cascade would add the row to the session.
            employee.department = department
        self._persist(employee, ctx)
        ctx.resolver.remember(EMPLOYEE, employee)
        ctx.count_entity(EMPLOYEE, "created")
        return employee

    def entity_key(self, entity: Employee) -> str:
        return entity.employee_id

    def active_entities(self, session: Session) -> Iterable[Employee]:
        return session.scalars(
            select(Employee).where(Employee.status == EmployeeStatus.ACTIVE).order_by(Employee.id)
        ).all()

    def deactivate(self, entity: Employee) -> None:
        entity.status = EmployeeStatus.INACTIVE
