"""
Find-or-create for the entities that import rows reference.

One resolver serves one batch (or, for dry-run workbooks, one upload). Lookups
are cached by normalized natural key. In dry-run mode nothing is added to the
session: created entities are transient placeholders that only live in the
cache so later rows resolve to them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from flask import current_app, has_app_context
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from compliance_app.models import CertificateType, Department, Employee

from ..errors import PersistenceError, ResolutionError
from .status import months_between
from .values import clean_identifier, clean_text, code_prefix

DEPARTMENT = "department"
EMPLOYEE = "employee"
CERTIFICATE_TYPE = "certificate_type"

CODE_MAX_LENGTH = 20
_CODE_RULES = {
    DEPARTMENT: (Department, 6, "DEPT"),
    CERTIFICATE_TYPE: (CertificateType, 8, "CERT"),
}

VALIDITY_KEYWORDS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("safety", "k3"), 12),
    (("technical", "teknis"), 24),
)

EntityListener = Callable[[str, str], None]


@dataclass(frozen=True)
class Resolution:
    entity: Any
    created: bool = False


def _name_key(name: str) -> str:
    return " ".join(name.split()).casefold()


class EntityResolver:
    """Resolve departments, employees and certificate types for import rows."""

    def __init__(
        self,
        session: Session,
        *,
        dry_run: bool = False,
        create_missing: bool = True,
        default_warning_days: int = 30,
        auto_type_warning_days: int = 90,
        default_validity_months: int = 36,
        listener: EntityListener | None = None,
    ) -> None:
        self.session = session
        self.dry_run = dry_run
        self.create_missing = create_missing
        self.default_warning_days = default_warning_days
        self.auto_type_warning_days = auto_type_warning_days
        self.default_validity_months = default_validity_months
        self.listener = listener
        self._cache: dict[tuple[str, str], Any] = {}
        self._reserved: dict[str, set[str]] = {DEPARTMENT: set(), CERTIFICATE_TYPE: set()}
        self._generated: list[tuple[str, str, Any]] = []

    # -- cache ----------------------------------------------------------------------

    def _cached(self, kind: str, *keys: str | None) -> Any:
        for key in keys:
            if key and (kind, key) in self._cache:
                return self._cache[(kind, key)]
        return None

    def remember(self, kind: str, entity: Any) -> None:
        """Cache ``entity`` under every natural key it can be referenced by."""

        if kind == EMPLOYEE:
            for identifier in {entity.employee_id, entity.nip}:
                if identifier:
                    self._cache[(EMPLOYEE, f"id:{identifier}")] = entity
            return
        if entity.code:
            self._cache[(kind, f"code:{entity.code.upper()}")] = entity
            self._reserved[kind].add(entity.code.upper())
        if entity.name:
            self._cache[(kind, f"name:{_name_key(entity.name)}")] = entity

    def forget(self, kind: str, entity: Any) -> None:
        for cache_key, cached in list(self._cache.items()):
            if cache_key[0] == kind and cached is entity:
                del self._cache[cache_key]

    def _notify(self, kind: str, action: str) -> None:
        if self.listener is not None:
            self.listener(kind, action)

    def _persist(self, kind: str, entity: Any) -> None:
        if not self.dry_run:
            self.session.add(entity)
            self.session.flush()
        self.remember(kind, entity)
        self._notify(kind, "created")

    # -- codes ----------------------------------------------------------------------

    def _code_in_storage(self, kind: str, code: str) -> bool:
        model = _CODE_RULES[kind][0]
        stmt = select(model.id).where(func.upper(model.code) == code.upper()).limit(1)
        return self.session.execute(stmt).first() is not None

    def code_available(self, kind: str, code: str) -> bool:
        code = code.upper()
        return code not in self._reserved[kind] and not self._code_in_storage(kind, code)

    def generate_code(self, kind: str, name: str | None) -> str:
        """
        Uppercase alphanumeric prefix of ``name``; collisions get a numeric
        suffix (``RAMP``, ``RAMP2``, ``RAMP3`` ...).
        """

        _, length, fallback = _CODE_RULES[kind]
        base = code_prefix(name, length) or fallback
        candidate = base
        suffix = 1
        while not self.code_available(kind, candidate):
            suffix += 1
            tail = str(suffix)
            candidate = f"{base[: CODE_MAX_LENGTH - len(tail)]}{tail}"
        self._reserved[kind].add(candidate)
        return candidate

    def assign_code(self, kind: str, entity: Any, requested: str | None) -> None:
        """Use ``requested`` when free, otherwise generate one from the name."""

        if requested and self.code_available(kind, requested):
            entity.code = requested.upper()
            self._reserved[kind].add(entity.code)
            return
        entity.code = self.generate_code(kind, entity.name)
        self._generated.append((kind, entity.code, entity))

    def verify_generated_codes(self) -> None:
        """
        Re-check generated codes just before commit. Another writer may have
        claimed a code between generation and commit.
        """

        for kind, code, entity in self._generated:
            model = _CODE_RULES[kind][0]
            stmt = select(model.id).where(func.upper(model.code) == code.upper())
            owners = {row[0] for row in self.session.execute(stmt)}
            if owners - {entity.id}:
                raise PersistenceError(f"Generated {kind.replace('_', ' ')} code '{code}' is already in use.")

    # -- departments ----------------------------------------------------------------

    def find_department(self, *, code: str | None = None, name: str | None = None) -> Department | None:
        code = clean_text(code)
        name = clean_text(name)
        code_key = f"code:{code.upper()}" if code else None
        name_key = f"name:{_name_key(name)}" if name else None

        if code_key:
            department = self._cached(DEPARTMENT, code_key)
            if department is None:
                department = self.session.scalars(
                    select(Department).where(func.upper(Department.code) == code.upper()).limit(1)
                ).first()
            if department is not None:
                self.remember(DEPARTMENT, department)
                return department

        if name_key:
            department = self._cached(DEPARTMENT, name_key)
            if department is None:
                department = self.session.scalars(
                    select(Department)
                    .where(func.lower(Department.name) == name.lower())
                    .order_by(Department.id)
                    .limit(1)
                ).first()
            if department is not None:
                self.remember(DEPARTMENT, department)
                return department
        return None

    def resolve_department(
        self,
        reference: str | None = None,
        *,
        code: str | None = None,
        name: str | None = None,
        create: bool | None = None,
    ) -> Resolution:
        """
        Resolve a department reference, creating it when allowed.

        A bare ``reference`` (a spreadsheet cell) is tried as a code and then
        as a name; when created, its code is derived from the name.
        """

        reference = clean_text(reference)
        code = clean_text(code)
        name = clean_text(name)
        department = self.find_department(code=code or reference, name=name or reference)
        if department is not None:
            return Resolution(department)

        label = code or name or reference
        allowed = self.create_missing if create is None else create
        if not allowed:
            raise ResolutionError(DEPARTMENT, label)

        department = Department(name=name or reference or code, is_active=True)
        self.assign_code(DEPARTMENT, department, code)
        self._persist(DEPARTMENT, department)
        self._log("Department created during import", department.code, department.name)
        return Resolution(department, created=True)

    # -- employees ------------------------------------------------------------------

    def find_employee(self, identifier: Any) -> Employee | None:
        """Match on ``employee_id`` first, then on the legacy ``nip`` column."""

        key = clean_identifier(identifier)
        if not key:
            return None
        employee = self._cached(EMPLOYEE, f"id:{key}")
        if employee is not None:
            return employee
        employee = self.session.scalars(select(Employee).where(Employee.employee_id == key).limit(1)).first()
        if employee is None:
            employee = self.session.scalars(select(Employee).where(Employee.nip == key).limit(1)).first()
        if employee is not None:
            self.remember(EMPLOYEE, employee)
        return employee

    def resolve_employee(self, identifier: Any) -> Resolution:
        """Employees are never created implicitly."""

        employee = self.find_employee(identifier)
        if employee is None:
            raise ResolutionError(EMPLOYEE, clean_identifier(identifier))
        return Resolution(employee)

    def update_employee_attributes(
        self,
        employee: Employee,
        *,
        name: str | None = None,
        position: str | None = None,
        department: Department | None = None,
    ) -> list[str]:
        """
        Apply name/position/department when they differ from stored values.
        Returns the changed field names (also reported in dry-run mode).
        """

        changed: list[str] = []
        if name and name != employee.name:
            changed.append("name")
        if position and position != employee.position:
            changed.append("position")
        if department is not None and (department.id is None or department.id != employee.department_id):
            changed.append("department")
        if not changed or self.dry_run:
            return changed

        if "name" in changed:
            employee.name = name
        if "position" in changed:
            employee.position = position
        if "department" in changed:
            employee.department = department
        self._notify(EMPLOYEE, "updated")
        return changed

    # -- certificate types ----------------------------------------------------------

    def find_certificate_type(
        self,
        *,
        code: str | None = None,
        name: str | None = None,
        substring: bool = True,
    ) -> CertificateType | None:
        """Match by code first; the name is only consulted when no code matches."""

        code = clean_text(code)
        name = clean_text(name)

        if code:
            certificate_type = self._cached(CERTIFICATE_TYPE, f"code:{code.upper()}")
            if certificate_type is None:
                certificate_type = self.session.scalars(
                    select(CertificateType).where(func.upper(CertificateType.code) == code.upper()).limit(1)
                ).first()
            if certificate_type is not None:
                self.remember(CERTIFICATE_TYPE, certificate_type)
                return certificate_type

        if not name:
            return None
        name_key = f"name:{_name_key(name)}"
        certificate_type = self._cached(CERTIFICATE_TYPE, name_key)
        if certificate_type is not None:
            return certificate_type

        candidates = [select(CertificateType).where(func.lower(CertificateType.name) == name.lower())]
        if substring:
            candidates.append(
                select(CertificateType).where(func.lower(CertificateType.name).contains(name.lower(), autoescape=True))
            )
        for stmt in candidates:
            certificate_type = self.session.scalars(stmt.order_by(CertificateType.id).limit(1)).first()
            if certificate_type is not None:
                self.remember(CERTIFICATE_TYPE, certificate_type)
                # A substring hit is also reachable under the spelling used in the upload.
                self._cache[(CERTIFICATE_TYPE, name_key)] = certificate_type
                return certificate_type
        return None

    def infer_validity_months(
        self,
        *,
        explicit: int | None = None,
        issue_date: date | None = None,
        expiry_date: date | None = None,
        hint: str | None = None,
    ) -> int:
        if explicit and explicit > 0:
            return explicit
        if issue_date and expiry_date and expiry_date > issue_date:
            months = months_between(issue_date, expiry_date)
            if months > 0:
                return months
        text = (hint or "").lower()
        for keywords, months in VALIDITY_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return months
        return self.default_validity_months

    def resolve_certificate_type(
        self,
        *,
        code: str | None = None,
        name: str | None = None,
        category: str | None = None,
        validity_months: int | None = None,
        issue_date: date | None = None,
        expiry_date: date | None = None,
        create: bool | None = None,
    ) -> Resolution:
        """
        Resolve by code, then name (exact, then substring). Ad-hoc types
        created here are recurrent and not mandatory.
        """

        certificate_type = self.find_certificate_type(code=code, name=name)
        if certificate_type is not None:
            return Resolution(certificate_type)

        label = clean_text(code) or clean_text(name)
        allowed = self.create_missing if create is None else create
        if not allowed:
            raise ResolutionError(CERTIFICATE_TYPE, label)

        type_name = clean_text(name) or clean_text(code)
        certificate_type = CertificateType(
            name=type_name,
            category=clean_text(category),
            validity_months=self.infer_validity_months(
                explicit=validity_months,
                issue_date=issue_date,
                expiry_date=expiry_date,
                hint=" ".join(filter(None, (category, type_name))),
            ),
            warning_days=self.auto_type_warning_days,
            is_mandatory=False,
            is_recurrent=True,
            is_active=True,
        )
        self.assign_code(CERTIFICATE_TYPE, certificate_type, clean_text(code))
        self._persist(CERTIFICATE_TYPE, certificate_type)
        self._log("Certificate type created during import", certificate_type.code, certificate_type.name)
        return Resolution(certificate_type, created=True)

    def _log(self, message: str, code: str, name: str | None) -> None:
        if has_app_context():
            current_app.logger.info(
                message,
                extra={"entity_code": code, "entity_name": name, "import_dry_run": self.dry_run},
            )
