"""Canonical certificate/training type ingest contract."""

from __future__ import annotations

from typing import Tuple

from .base import FieldSpec, ImportContract

CERTIFICATE_TYPE_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="code",
        description="Certificate type code; generated from the name when absent.",
        aliases=(
            "kode",
            "training_code",
            "certificate_code",
            "kode_training",
            "kode_sertifikat",
            "type_code",
        ),
    ),
    FieldSpec(
        name="name",
        description="Certificate type name.",
        required=True,
        aliases=(
            "nama",
            "training_name",
            "certificate_name",
            "nama_training",
            "nama_sertifikat",
            "training_type",
            "certificate_type",
        ),
    ),
    FieldSpec(
        name="category",
        description="Grouping such as safety or technical.",
        aliases=("kategori", "jenis", "type"),
    ),
    FieldSpec(
        name="description",
        description="Free-form description.",
        aliases=("deskripsi", "keterangan"),
    ),
    FieldSpec(
        name="validity_months",
        description="Months a certificate stays valid; blank means it never expires.",
        aliases=("masa_berlaku", "valid_for", "validity", "validity_period"),
    ),
    FieldSpec(
        name="warning_days",
        description="Days before expiry at which a certificate is expiring soon.",
        aliases=("hari_peringatan", "remind_before", "warning_period"),
    ),
    FieldSpec(
        name="is_mandatory",
        description="Whether every employee must hold this certificate.",
        aliases=("mandatory", "wajib", "required"),
    ),
    FieldSpec(
        name="is_recurrent",
        description="Whether the certificate must be renewed.",
        aliases=("recurrent", "berulang", "recurring"),
    ),
    FieldSpec(
        name="is_active",
        description="Active flag.",
        aliases=("active", "status", "aktif"),
    ),
)

CERTIFICATE_TYPE_CONTRACT = ImportContract(
    subject="certificate_types",
    entity_kind="certificate_type",
    fields=CERTIFICATE_TYPE_FIELDS,
)
