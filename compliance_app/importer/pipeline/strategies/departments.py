"""
Department import, including parent links that form the department tree.
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from compliance_app.models import Department, Employee

from ...contracts.departments import DEPARTMENT_CONTRACT
from ...errors import ValidationError
from ..context import BatchContext
from ..normalize import NormalizedRow
from ..resolver import DEPARTMENT
from ..values import clean_text, parse_bool
from .base import Changes, ImportStrategy, Payload, References


class DepartmentStrategy(ImportStrategy):
    contract = DEPARTMENT_CONTRACT

    def prepare(self, row: NormalizedRow, ctx: BatchContext) -> Payload:
        code = clean_text(row.get("code"))
        is_active = parse_bool(row.get("is_active"))
        if is_active is None and clean_text(row.get("is_active")):
            ctx.warn(f"Unrecognised active flag '{row.get('is_active')}'; department treated as active")
        return {
            "code": code.upper() if code else None,
            "name": clean_text(row.get("name")),
            "description": clean_text(row.get("description")),
            "parent_code": clean_text(row.get("parent_code")),
            "parent_name": clean_text(row.get("parent_name")),
            "manager": clean_text(row.get("manager")),
            "location": clean_text(row.get("location")),
            "is_active": is_active,
        }

    def natural_key(self, payload: Payload) -> str | None:
        if payload["code"]:
            return payload["code"]
        return payload["name"].casefold() if payload["name"] else None

    def resolve(self, payload: Payload, ctx: BatchContext) -> References:
        if not (payload["parent_code"] or payload["parent_name"]):
            return {"parent": None}
        return {"parent": ctx.resolver.find_department(code=payload["parent_code"], name=payload["parent_name"])}

    def complete_references(self, payload: Payload, refs: References, ctx: BatchContext) -> None:
        if refs["parent"] is not None or not (payload["parent_code"] or payload["parent_name"]):
            return
        names_itself = (payload["code"] and payload["code"] == (payload["parent_code"] or "").upper()) or (
            payload["name"] and payload["name"].casefold() == (payload["parent_name"] or "").casefold()
        )
        if names_itself:
            raise ValidationError("A department cannot be its own parent", field="parent")
        resolution = ctx.resolver.resolve_department(code=payload["parent_code"], name=payload["parent_name"])
        refs["parent"] = resolution.entity

    def referenced_keys(self, refs: References) -> Iterable[str]:
        parent = refs.get("parent")
        return (parent.code,) if parent is not None and parent.code else ()

    def find_existing(self, payload: Payload, refs: References, ctx: BatchContext) -> Department | None:
        return ctx.resolver.find_department(code=payload["code"], name=payload["name"])

    def _check_parent(self, department: Department | None, refs: References) -> None:
        parent = refs.get("parent")
        if parent is None or department is None:
            return
        if parent is department:
            raise ValidationError("A department cannot be its own parent", field="parent")
        ancestor = parent.parent
        while ancestor is not None:
            if ancestor is department:
                raise ValidationError("Parent assignment would create a cycle", field="parent")
            ancestor = ancestor.parent

    def current_values(self, entity: Department, refs: References) -> Payload:
        return {
            "name": entity.name,
            "description": entity.description,
            "parent": entity.parent.code if entity.parent is not None else None,
            "manager": entity.manager,
            "location": entity.location,
            "is_active": entity.is_active,
        }

    def incoming_values(self, payload: Payload, refs: References, ctx: BatchContext, entity: Any) -> Payload:
        parent = refs.get("parent")
        return {
            "name": payload["name"],
            "description": payload["description"],
            "parent": parent.code if parent is not None else None,
            "manager": payload["manager"],
            "location": payload["location"],
            "is_active": payload["is_active"],
        }

    def changes(self, entity: Department, payload: Payload, refs: References, ctx: BatchContext) -> Changes:
        self._check_parent(entity, refs)
        return super().changes(entity, payload, refs, ctx)

    def apply_changes(
        self,
        entity: Department,
        changes: Changes,
        payload: Payload,
        refs: References,
        ctx: BatchContext,
    ) -> None:
        values = self.incoming_values(payload, refs, ctx, entity)
        renamed = "name" in changes
        if renamed:
            ctx.resolver.forget(DEPARTMENT, entity)
        for field_name in changes:
            if field_name == "parent":
                entity.parent = refs["parent"]
            else:
                setattr(entity, field_name, values[field_name])
        if renamed:
            ctx.resolver.remember(DEPARTMENT, entity)
        ctx.count_entity(DEPARTMENT, "updated")

    def create(self, payload: Payload, refs: References, ctx: BatchContext) -> Department:
        if payload["code"] and not ctx.resolver.code_available(DEPARTMENT, payload["code"]):
            raise ValidationError(f"Department code '{payload['code']}' is already in use", field="code")
        parent = refs.get("parent")
        department = Department(
            name=payload["name"],
            description=payload["description"],
            parent_id=parent.id if parent is not None else None,
            manager=payload["manager"],
            location=payload["location"],
            is_active=True if payload["is_active"] is None else payload["is_active"],
        )
        if parent is not None and not ctx.dry_run:
            department.parent = parent
        ctx.resolver.assign_code(DEPARTMENT, department, payload["code"])
        self._persist(department, ctx)
        ctx.resolver.remember(DEPARTMENT, department)
        ctx.count_entity(DEPARTMENT, "created")
        return department

    def describe(self, entity: Department) -> str | None:
        return f"{entity.code} {entity.name}"

    def entity_key(self, entity: Department) -> str:
        return entity.code

    def active_entities(self, session: Session) -> Iterable[Department]:
        return session.scalars(
            select(Department).where(Department.is_active.is_(True)).order_by(Department.id)
        ).all()

    def deactivate(self, entity: Department) -> None:
        entity.is_active = False

    def delete(self, session: Session, entity: Department) -> None:
        session.execute(update(Employee).where(Employee.department_id == entity.id).values(department_id=None))
        session.execute(update(Department).where(Department.parent_id == entity.id).values(parent_id=None))
        session.delete(entity)
