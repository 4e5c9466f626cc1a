"""Canonical department ingest contract."""

from __future__ import annotations

from typing import Tuple

from .base import FieldSpec, ImportContract

DEPARTMENT_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="code",
        description="Department code; generated from the name when absent.",
        aliases=("kode", "department_code", "kode_departemen", "dept_code"),
    ),
    FieldSpec(
        name="name",
        description="Department name.",
        required=True,
        aliases=("nama", "department_name", "nama_departemen", "department", "departemen"),
    ),
    FieldSpec(
        name="description",
        description="Free-form description.",
        aliases=("deskripsi", "keterangan"),
    ),
    FieldSpec(
        name="parent_name",
        description="Name of the parent department.",
        aliases=("parent", "parent_department", "induk", "departemen_induk"),
    ),
    FieldSpec(
        name="parent_code",
        description="Code of the parent department (takes precedence over parent_name).",
        aliases=("kode_induk", "parent_department_code"),
    ),
    FieldSpec(
        name="manager",
        description="Department head.",
        aliases=("kepala", "head", "manager_name", "kepala_departemen"),
    ),
    FieldSpec(
        name="location",
        description="Physical location.",
        aliases=("lokasi",),
    ),
    FieldSpec(
        name="is_active",
        description="Active flag.",
        aliases=("active", "status", "aktif"),
    ),
)

DEPARTMENT_CONTRACT = ImportContract(subject="departments", entity_kind="department", fields=DEPARTMENT_FIELDS)
