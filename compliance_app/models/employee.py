# compliance_app/models/employee.py

from sqlalchemy import Enum, Index

from .base import BaseModel, db
from .enums import EmployeeStatus


class Employee(BaseModel):
    """
    Employee tracked for certification compliance.

    ``employee_id`` is the external identifier. Older uploads carry the same
    identifier under ``nip``; both columns are kept so either can match.
    """

    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(50), unique=True, nullable=False, index=True)
    nip = db.Column(db.String(50), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=True, index=True)
    position = db.Column(db.String(200), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    hire_date = db.Column(db.Date, nullable=True)
    status = db.Column(
        Enum(EmployeeStatus, name="employee_status_enum"),
        default=EmployeeStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    notes = db.Column(db.Text, nullable=True)

    # Relationships
    department = db.relationship("Department", back_populates="employees")
    certificates = db.relationship(
        "CertificateRecord",
        back_populates="employee",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_employee_department_status", "department_id", "status"),)

    def __repr__(self):
        return f"<Employee {self.employee_id} {self.name}>"

    @property
    def is_active(self):
        return self.status == EmployeeStatus.ACTIVE
