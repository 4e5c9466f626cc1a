"""Canonical ingest contract helpers for the import engine."""

from __future__ import annotations

from typing import Mapping

from ..errors import UnsupportedSubjectError
from .base import FieldSpec, ImportContract, normalize_header
from .certificate_records import CERTIFICATE_RECORD_CONTRACT
from .certificate_types import CERTIFICATE_TYPE_CONTRACT
from .departments import DEPARTMENT_CONTRACT
from .employees import EMPLOYEE_CONTRACT
from .sheets import SHEET_SYNONYMS, SUBJECT_ORDER, match_sheet_subject

CONTRACTS: Mapping[str, ImportContract] = {
    contract.subject: contract
    for contract in (
        DEPARTMENT_CONTRACT,
        CERTIFICATE_TYPE_CONTRACT,
        EMPLOYEE_CONTRACT,
        CERTIFICATE_RECORD_CONTRACT,
    )
}


def get_contract(subject: str) -> ImportContract:
    """Return the contract for ``subject`` (e.g. ``employees``)."""

    try:
        return CONTRACTS[subject]
    except KeyError as exc:
        supported = ", ".join(sorted(CONTRACTS))
        raise UnsupportedSubjectError(f"Unknown import subject '{subject}'. Supported: {supported}.") from exc


__all__ = [
    "CONTRACTS",
    "FieldSpec",
    "ImportContract",
    "SHEET_SYNONYMS",
    "SUBJECT_ORDER",
    "get_contract",
    "match_sheet_subject",
    "normalize_header",
]
