"""Canonical employee ingest contract.

Employee uploads come from HR exports. The external identifier arrives either
as ``employee_id`` or as the legacy ``nip`` column; both map to one key.
"""

from __future__ import annotations

from typing import Tuple

from .base import FieldSpec, ImportContract

EMPLOYEE_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="employee_id",
        description="External employee identifier (NIP).",
        required=True,
        aliases=("nip", "id_pegawai", "employee_number", "employee_no", "no_pegawai"),
    ),
    FieldSpec(
        name="name",
        description="Employee full name.",
        required=True,
        aliases=("nama_lengkap", "nama", "full_name", "employee_name", "nama_pegawai"),
    ),
    FieldSpec(
        name="department",
        description="Department code or name.",
        aliases=("departemen", "department_name", "dept", "bagian", "divisi", "unit", "unit_kerja"),
    ),
    FieldSpec(
        name="position",
        description="Job title.",
        aliases=("jabatan", "posisi", "job_title", "title"),
    ),
    FieldSpec(
        name="email",
        description="Work email address; invalid values are dropped with a warning.",
        aliases=("email_address", "alamat_email", "e_mail"),
    ),
    FieldSpec(
        name="phone",
        description="Phone number.",
        aliases=("no_hp", "telepon", "hp", "mobile", "phone_number", "no_telepon"),
    ),
    FieldSpec(
        name="hire_date",
        description="Date the employee joined.",
        aliases=("tanggal_masuk", "join_date", "tgl_masuk", "start_work_date"),
    ),
    FieldSpec(
        name="status",
        description="Active flag (active/aktif/yes/1 or inactive/nonaktif/no/0).",
        aliases=("status_aktif", "is_active", "active", "aktif", "employment_status"),
    ),
    FieldSpec(
        name="notes",
        description="Free-form notes.",
        aliases=("catatan", "keterangan", "remarks"),
    ),
)

EMPLOYEE_CONTRACT = ImportContract(subject="employees", entity_kind="employee", fields=EMPLOYEE_FIELDS)
