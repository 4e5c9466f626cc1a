"""
Certificate number convention ``{PROVIDER}/OPR-{sequence}/{MON}/{YEAR}``.

Sequencing is explicit: callers pass the current maximum and receive the next
value. ``CertificateNumberSequence`` carries that maximum for one batch and is
seeded from the numbers already stored for the provider.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from compliance_app.models import CertificateRecord

CERTIFICATE_NUMBER_PATTERN = re.compile(
    r"^(?P<provider>[A-Z0-9]+)/OPR-(?P<sequence>\d+)/(?P<month>[A-Z]{3})/(?P<year>\d{4})$"
)
MONTH_ABBREVIATIONS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
SEQUENCE_WIDTH = 6


@dataclass(frozen=True)
class CertificateNumber:
    provider: str
    sequence: int
    month: str
    year: int


def next_sequence(current_max: int | None) -> int:
    return (current_max or 0) + 1


def format_certificate_number(provider: str, sequence: int, issued_on: date) -> str:
    month = MONTH_ABBREVIATIONS[issued_on.month - 1]
    return f"{provider.upper()}/OPR-{sequence:0{SEQUENCE_WIDTH}d}/{month}/{issued_on.year:04d}"


def parse_certificate_number(value: str | None) -> CertificateNumber | None:
    """Return the parts of a conventional certificate number, else ``None``."""

    if not value:
        return None
    match = CERTIFICATE_NUMBER_PATTERN.match(value.strip().upper())
    if match is None or match.group("month") not in MONTH_ABBREVIATIONS:
        return None
    return CertificateNumber(
        provider=match.group("provider"),
        sequence=int(match.group("sequence")),
        month=match.group("month"),
        year=int(match.group("year")),
    )


def max_sequence(numbers: Iterable[str | None], provider: str) -> int:
    provider = provider.upper()
    highest = 0
    for number in numbers:
        parsed = parse_certificate_number(number)
        if parsed is not None and parsed.provider == provider:
            highest = max(highest, parsed.sequence)
    return highest


class CertificateNumberSequence:
    """Batch-scoped sequence for one provider code."""

    def __init__(self, provider: str, current_max: int = 0) -> None:
        self.provider = provider.upper()
        self.current_max = current_max

    @classmethod
    def from_storage(cls, session: Session, provider: str) -> "CertificateNumberSequence":
        prefix = f"{provider.upper()}/OPR-"
        numbers = session.scalars(
            select(CertificateRecord.certificate_number).where(CertificateRecord.certificate_number.like(f"{prefix}%"))
        )
        return cls(provider, max_sequence(numbers, provider))

    def observe(self, number: str | None) -> None:
        """Account for a number supplied by the upload so generated ones never collide."""

        parsed = parse_certificate_number(number)
        if parsed is not None and parsed.provider == self.provider:
            self.current_max = max(self.current_max, parsed.sequence)

    def next_number(self, issued_on: date) -> str:
        sequence = next_sequence(self.current_max)
        self.current_max = sequence
        return format_certificate_number(self.provider, sequence, issued_on)
