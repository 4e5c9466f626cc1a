"""Canonical certificate record (training record) ingest contract.

Rows reference an existing employee and a certificate type by code or name.
Any uploaded ``status`` is informational only; lifecycle status is always
recomputed from the dates.
"""

from __future__ import annotations

from typing import Tuple

from .base import FieldSpec, ImportContract

CERTIFICATE_RECORD_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="employee_id",
        description="External identifier of the certificate holder.",
        required=True,
        aliases=("nip", "id_pegawai", "employee_number", "no_pegawai"),
    ),
    FieldSpec(
        name="employee_name",
        description="Holder name; updates the stored name when it differs.",
        required=True,
        aliases=("nama", "name", "nama_pegawai", "nama_lengkap", "full_name"),
    ),
    FieldSpec(
        name="department",
        description="Holder department code or name.",
        aliases=("departemen", "bagian", "divisi", "dept", "unit"),
    ),
    FieldSpec(
        name="position",
        description="Holder job title.",
        aliases=("jabatan", "posisi"),
    ),
    FieldSpec(
        name="certificate_type_code",
        description="Certificate type code.",
        aliases=("training_code", "kode_training", "certificate_code", "kode_sertifikat", "code"),
    ),
    FieldSpec(
        name="certificate_type_name",
        description="Certificate type name.",
        required=True,
        aliases=(
            "training_name",
            "nama_training",
            "certificate_name",
            "nama_sertifikat",
            "certificate_type",
            "training",
        ),
    ),
    FieldSpec(
        name="category",
        description="Category used when a certificate type is created on the fly.",
        aliases=("training_type", "jenis_training", "kategori", "training_category"),
    ),
    FieldSpec(
        name="certificate_number",
        description="Certificate number; generated when absent.",
        aliases=("nomor_sertifikat", "cert_number", "no_sertifikat", "certificate_no"),
    ),
    FieldSpec(
        name="issuer",
        description="Issuing body.",
        aliases=("penerbit", "issued_by"),
    ),
    FieldSpec(
        name="training_provider",
        description="Organisation that delivered the training.",
        aliases=("penyelenggara", "provider", "organizer", "vendor"),
    ),
    FieldSpec(
        name="training_date",
        description="Date the training started.",
        aliases=("tanggal_training", "start_date", "tgl_training"),
    ),
    FieldSpec(
        name="completion_date",
        description="Date the training was completed.",
        aliases=("tanggal_selesai", "end_date", "completed_date"),
    ),
    FieldSpec(
        name="issue_date",
        description="Date the certificate was issued.",
        aliases=("tanggal_terbit", "issued_date", "tgl_terbit", "certificate_date"),
    ),
    FieldSpec(
        name="expiry_date",
        description="Expiry date; derived from the validity period when absent.",
        aliases=("tanggal_expired", "expired_date", "tanggal_kadaluarsa", "valid_until", "expiration_date"),
    ),
    FieldSpec(
        name="validity_months",
        description="Validity period used when the certificate type is created on the fly.",
        aliases=("masa_berlaku", "valid_for"),
    ),
    FieldSpec(
        name="location",
        description="Training venue.",
        aliases=("lokasi", "tempat", "venue"),
    ),
    FieldSpec(
        name="instructor",
        description="Trainer name.",
        aliases=("instruktur", "trainer"),
    ),
    FieldSpec(
        name="training_hours",
        description="Training duration in hours.",
        aliases=("jam_training", "hours", "duration", "durasi"),
    ),
    FieldSpec(
        name="score",
        description="Assessment score.",
        aliases=("nilai",),
    ),
    FieldSpec(
        name="cost",
        description="Training cost.",
        aliases=("biaya", "fee"),
    ),
    FieldSpec(
        name="notes",
        description="Free-form notes.",
        aliases=("catatan", "keterangan", "remarks"),
    ),
    FieldSpec(
        name="status",
        description="Status as reported by the source; informational only.",
        aliases=("status_sertifikat", "certificate_status"),
    ),
)

CERTIFICATE_RECORD_CONTRACT = ImportContract(
    subject="certificate_records",
    entity_kind="certificate_record",
    fields=CERTIFICATE_RECORD_FIELDS,
)
