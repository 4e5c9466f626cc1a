# compliance_app/models/department.py

from sqlalchemy import Index

from .base import BaseModel, db


class Department(BaseModel):
    """Organisational unit; departments form a tree through ``parent_id``."""

    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=True, index=True)
    manager = db.Column(db.String(200), nullable=True)
    location = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)

    # Relationships
    parent = db.relationship("Department", remote_side=[id], back_populates="children")
    children = db.relationship("Department", back_populates="parent")
    employees = db.relationship("Employee", back_populates="department")

    __table_args__ = (Index("idx_department_name_active", "name", "is_active"),)

    def __repr__(self):
        return f"<Department {self.code} {self.name}>"
