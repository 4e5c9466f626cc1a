# compliance_app/models/certificate.py

from sqlalchemy import Enum, Index

from .base import BaseModel, db
from .enums import CertificateStatus, ComplianceStatus


class CertificateType(BaseModel):
    """Kind of certificate or training an employee can hold"""

    __tablename__ = "certificate_types"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)
    validity_months = db.Column(db.Integer, nullable=True)  # NULL = never expires
    warning_days = db.Column(db.Integer, default=30, nullable=False)
    is_mandatory = db.Column(db.Boolean, default=False, nullable=False)
    is_recurrent = db.Column(db.Boolean, default=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)

    certificates = db.relationship(
        "CertificateRecord",
        back_populates="certificate_type",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<CertificateType {self.code} {self.name}>"


class CertificateRecord(BaseModel):
    """A certificate held by an employee for a given certificate type"""

    __tablename__ = "certificate_records"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    certificate_type_id = db.Column(
        db.Integer, db.ForeignKey("certificate_types.id"), nullable=False, index=True
    )
    certificate_number = db.Column(db.String(100), unique=True, nullable=True)
    issuer = db.Column(db.String(200), nullable=True)
    training_provider = db.Column(db.String(200), nullable=True)

    # Dates
    training_date = db.Column(db.Date, nullable=True)
    completion_date = db.Column(db.Date, nullable=True)
    issue_date = db.Column(db.Date, nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)

    # Derived state
    status = db.Column(
        Enum(CertificateStatus, name="certificate_status_enum"),
        default=CertificateStatus.REGISTERED,
        nullable=False,
        index=True,
    )
    compliance_status = db.Column(
        Enum(ComplianceStatus, name="compliance_status_enum"),
        default=ComplianceStatus.PENDING,
        nullable=False,
        index=True,
    )
    reported_status = db.Column(db.String(50), nullable=True)  # as uploaded, informational only

    location = db.Column(db.String(200), nullable=True)
    instructor = db.Column(db.String(200), nullable=True)
    training_hours = db.Column(db.Float, nullable=True)
    score = db.Column(db.Float, nullable=True)
    cost = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    source_batch_id = db.Column(db.String(40), nullable=True, index=True)

    # Relationships
    employee = db.relationship("Employee", back_populates="certificates")
    certificate_type = db.relationship("CertificateType", back_populates="certificates")

    __table_args__ = (
        Index("idx_certificate_employee_type", "employee_id", "certificate_type_id", "issue_date"),
        Index("idx_certificate_expiry_status", "expiry_date", "status"),
    )

    def __repr__(self):
        status = self.status.value if self.status else "unsaved"
        return f"<CertificateRecord {self.certificate_number or self.id} ({status})>"
