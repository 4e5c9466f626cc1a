from datetime import date

from compliance_app.importer.pipeline.sequence import (
    CertificateNumberSequence,
    format_certificate_number,
    max_sequence,
    next_sequence,
    parse_certificate_number,
)
from compliance_app.models import CertificateRecord, db


def test_next_sequence_takes_the_current_maximum():
    assert next_sequence(None) == 1
    assert next_sequence(0) == 1
    assert next_sequence(41) == 42


def test_format_and_parse_certificate_numbers():
    number = format_certificate_number("glc", 7, date(2024, 3, 5))

    assert number == "GLC/OPR-000007/MAR/2024"
    parsed = parse_certificate_number(number)
    assert parsed.provider == "GLC"
    assert parsed.sequence == 7
    assert parsed.month == "MAR"
    assert parsed.year == 2024


def test_unconventional_numbers_are_ignored():
    assert parse_certificate_number("K3-2024-001") is None
    assert parse_certificate_number("GLC/OPR-000001/XYZ/2024") is None
    assert parse_certificate_number(None) is None
    assert max_sequence(["GLC/OPR-000003/JAN/2024", "ABC/OPR-000090/JAN/2024", "free text"], "glc") == 3


def test_sequence_observes_uploaded_numbers_of_its_provider():
    sequence = CertificateNumberSequence("GLC", current_max=2)

    sequence.observe("GLC/OPR-000010/JAN/2024")
    sequence.observe("ABC/OPR-000500/JAN/2024")

    assert sequence.next_number(date(2024, 2, 1)) == "GLC/OPR-000011/FEB/2024"
    assert sequence.next_number(date(2024, 2, 1)) == "GLC/OPR-000012/FEB/2024"


def test_sequence_is_seeded_from_storage(sample_employee, safety_type):
    for number in ("GLC/OPR-000041/JAN/2024", "ABC/OPR-000099/JAN/2024", None):
        db.session.add(
            CertificateRecord(
                employee_id=sample_employee.id,
                certificate_type_id=safety_type.id,
                certificate_number=number,
            )
        )
    db.session.commit()

    sequence = CertificateNumberSequence.from_storage(db.session, "GLC")

    assert sequence.current_max == 41
    assert sequence.next_number(date(2024, 6, 1)) == "GLC/OPR-000042/JUN/2024"
