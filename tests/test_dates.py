from datetime import date, datetime

from compliance_app.importer.pipeline.dates import DateParser, serial_to_date


def _parser():
    warnings = []
    return DateParser(on_warning=warnings.append), warnings


def test_spreadsheet_serial_numbers_convert_to_dates():
    parser, warnings = _parser()

    assert parser.parse(45292) == date(2024, 1, 1)
    assert parser.parse(45292.75) == date(2024, 1, 1)
    assert parser.parse("45292") == date(2024, 1, 1)
    assert warnings == []


def test_serial_out_of_range_is_rejected_with_warning():
    parser, warnings = _parser()

    assert serial_to_date(0) is None
    assert parser.parse(0, field="issue_date") is None
    assert len(warnings) == 1
    assert warnings[0].field == "issue_date"


def test_native_datetime_values_pass_through():
    parser, _ = _parser()

    assert parser.parse(datetime(2024, 3, 15, 9, 30)) == date(2024, 3, 15)
    assert parser.parse(date(2024, 3, 15)) == date(2024, 3, 15)


def test_day_first_text_wins_over_month_first():
    parser, _ = _parser()

    assert parser.parse("05/03/2024") == date(2024, 3, 5)
    assert parser.parse("15-03-2024") == date(2024, 3, 15)
    assert parser.parse("15.03.2024") == date(2024, 3, 15)


def test_month_first_text_used_when_day_first_is_impossible():
    parser, _ = _parser()

    assert parser.parse("03/15/2024") == date(2024, 3, 15)


def test_iso_and_long_month_formats():
    parser, _ = _parser()

    assert parser.parse(" 2024-03-15 ") == date(2024, 3, 15)
    assert parser.parse("2024-03-15 08:00:00") == date(2024, 3, 15)
    assert parser.parse("15 March 2024") == date(2024, 3, 15)
    assert parser.parse("15 Mar 2024") == date(2024, 3, 15)


def test_blank_values_are_null_without_warning():
    parser, warnings = _parser()

    assert parser.parse(None) is None
    assert parser.parse("") is None
    assert parser.parse("   ") is None
    assert warnings == []


def test_unparseable_text_yields_none_and_warning():
    parser, warnings = _parser()

    assert parser.parse("not a date", field="hire_date") is None
    assert len(warnings) == 1
    assert "hire_date" in str(warnings[0])
    assert warnings[0].value == "not a date"


def test_booleans_are_not_dates():
    parser, warnings = _parser()

    assert parser.parse(True) is None
    assert len(warnings) == 1
