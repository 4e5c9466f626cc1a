"""Workbook sheet routing: which import subject a sheet name refers to."""

from __future__ import annotations

from typing import Mapping, Tuple

from .base import normalize_header

SHEET_SYNONYMS: Mapping[str, Tuple[str, ...]] = {
    "departments": ("departments", "department", "departemen", "bagian", "divisi", "dept"),
    "certificate_types": (
        "certificate_types",
        "certificate_type",
        "training_types",
        "training_type",
        "jenis_training",
        "tipe_sertifikat",
        "jenis_sertifikat",
    ),
    "employees": ("employees", "employee", "pegawai", "karyawan", "sdm", "staff"),
    "certificate_records": (
        "certificate_records",
        "training_records",
        "training_record",
        "certificates",
        "certificate",
        "sertifikat",
        "pelatihan",
        "training",
    ),
}

# Referenced entities are imported before the rows that reference them.
SUBJECT_ORDER: Tuple[str, ...] = ("departments", "certificate_types", "employees", "certificate_records")


def match_sheet_subject(sheet_name: str | None) -> str | None:
    """
    Return the import subject for ``sheet_name`` or ``None`` when unrecognised.

    Exact synonym matches win; otherwise the first subject whose synonym
    appears inside the normalized sheet name is used.
    """

    token = normalize_header(sheet_name)
    if not token:
        return None
    for subject, synonyms in SHEET_SYNONYMS.items():
        if token in synonyms:
            return subject
    for subject in ("certificate_types", "certificate_records", "departments", "employees"):
        for synonym in SHEET_SYNONYMS[subject]:
            if synonym in token:
                return subject
    return None
