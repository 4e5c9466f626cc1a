"""
Per-subject import strategies.
"""

from __future__ import annotations

from ...errors import UnsupportedSubjectError
from .base import ImportStrategy
from .certificate_records import CertificateRecordStrategy
from .certificate_types import CertificateTypeStrategy
from .departments import DepartmentStrategy
from .employees import EmployeeStrategy

STRATEGIES: dict[str, type[ImportStrategy]] = {
    "departments": DepartmentStrategy,
    "certificate_types": CertificateTypeStrategy,
    "employees": EmployeeStrategy,
    "certificate_records": CertificateRecordStrategy,
}


def get_strategy(subject: str) -> ImportStrategy:
    try:
        strategy_cls = STRATEGIES[subject]
    except KeyError as exc:
        raise UnsupportedSubjectError(f"No import strategy registered for subject '{subject}'.") from exc
    return strategy_cls()


__all__ = [
    "CertificateRecordStrategy",
    "CertificateTypeStrategy",
    "DepartmentStrategy",
    "EmployeeStrategy",
    "ImportStrategy",
    "STRATEGIES",
    "get_strategy",
]
