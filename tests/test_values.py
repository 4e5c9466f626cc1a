import pytest

from compliance_app.importer.pipeline.values import (
    clean_identifier,
    clean_text,
    code_prefix,
    normalize_email,
    parse_bool,
    parse_int,
    parse_number,
)


def test_clean_text_trims_and_nulls_blanks():
    assert clean_text("  Budi  ") == "Budi"
    assert clean_text("   ") is None
    assert clean_text(None) is None
    assert clean_text(12.0) == "12"


def test_identifiers_read_as_floats_lose_the_decimal():
    assert clean_identifier(21608001.0) == "21608001"
    assert clean_identifier(21608001) == "21608001"
    assert clean_identifier(" EMP-7 ") == "EMP-7"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("aktif", True),
        ("Active", True),
        ("ya", True),
        (1, True),
        ("nonaktif", False),
        ("Tidak", False),
        ("0", False),
        ("maybe", None),
        ("", None),
    ],
)
def test_parse_bool_understands_regional_tokens(value, expected):
    assert parse_bool(value) is expected


def test_parse_number_handles_both_decimal_separators():
    assert parse_number("7,5") == 7.5
    assert parse_number("1,250.50") == 1250.5
    assert parse_number("16 jam") == 16.0
    assert parse_number("abc") is None
    assert parse_number(None) is None
    assert parse_int("24.0") == 24


def test_normalize_email_validates_offline():
    assert normalize_email(" budi@Example.COM ").endswith("@example.com")
    assert normalize_email("") is None
    with pytest.raises(ValueError, match="Invalid email format"):
        normalize_email("not-an-email")


def test_code_prefix_strips_non_alphanumerics():
    assert code_prefix("Ramp Handling", 6) == "RAMPHA"
    assert code_prefix("K3 - Umum", 8) == "K3UMUM"
    assert code_prefix(None, 6) == ""
