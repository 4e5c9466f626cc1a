# compliance_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .certificate import CertificateRecord, CertificateType
from .department import Department
from .employee import Employee
from .enums import CertificateStatus, ComplianceStatus, EmployeeStatus
from .importer import ImportBatch, ImportBatchStatus, ImportRowOutcome, RowOutcomeKind

__all__ = [
    "db",
    "BaseModel",
    "Department",
    "Employee",
    "CertificateType",
    "CertificateRecord",
    # Enums
    "EmployeeStatus",
    "CertificateStatus",
    "ComplianceStatus",
    # Importer bookkeeping
    "ImportBatch",
    "ImportBatchStatus",
    "ImportRowOutcome",
    "RowOutcomeKind",
]
