import io
from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook

from compliance_app.importer.adapters import read_csv_rows, read_csv_stream, read_sheet_rows, read_workbook
from compliance_app.importer.errors import InputFileError


def _write_csv(tmp_path: Path, contents: str, *, encoding: str = "utf-8") -> Path:
    csv_file = tmp_path / "employees.csv"
    csv_file.write_text(contents, encoding=encoding)
    return csv_file


def test_csv_header_bom_is_stripped(tmp_path):
    csv_path = _write_csv(tmp_path, "NIP,Nama\n1001,Ani\n", encoding="utf-8-sig")

    data = read_csv_rows(csv_path)

    assert data.headers == ("NIP", "Nama")
    assert data.rows == [{"NIP": "1001", "Nama": "Ani"}]


def test_csv_trailing_blank_rows_are_dropped(tmp_path):
    csv_path = _write_csv(tmp_path, "NIP,Nama\n1001,Ani\n,\n1002,Budi\n,\n , \n")

    rows = read_csv_rows(csv_path).rows

    assert [row["NIP"] for row in rows] == ["1001", "", "1002"]


def test_csv_extra_cells_are_discarded():
    data = read_csv_stream(io.StringIO(" NIP , Nama \n1001,Ani,overflow\n"))

    assert data.headers == ("NIP", "Nama")
    assert data.rows == [{"NIP": "1001", "Nama": "Ani"}]


def test_csv_without_header_is_rejected():
    with pytest.raises(InputFileError, match="header row is required"):
        read_csv_stream(io.StringIO(""))


def test_missing_csv_file_is_an_input_error(tmp_path):
    with pytest.raises(InputFileError, match="Could not read CSV file"):
        read_csv_rows(tmp_path / "missing.csv")


def _write_workbook(tmp_path: Path) -> Path:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Employees"
    sheet.append(["NIP", "Name", None, "Name", "Hire Date"])
    sheet.append([21608001, "Budi", "ignored", "Budi S.", datetime(2020, 1, 6)])
    sheet.append(["  ", None, None, None, None])
    sheet.append(["21608002", "Ani", None, None, None])
    sheet.append([None, "   ", None, None, None])
    extra = workbook.create_sheet("Departments")
    extra.append(["Code", "Name"])
    extra.append(["OPS", "Operations"])
    path = tmp_path / "hr.xlsx"
    workbook.save(path)
    return path


def test_workbook_sheets_are_read_in_order(tmp_path):
    sheets = read_workbook(_write_workbook(tmp_path))

    assert [sheet.name for sheet in sheets] == ["Employees", "Departments"]
    assert sheets[1].rows == [{"Code": "OPS", "Name": "Operations"}]


def test_sheet_headers_and_rows(tmp_path):
    data = read_sheet_rows(_write_workbook(tmp_path))

    assert data.name == "Employees"
    assert data.headers == ("NIP", "Name", "Name_2", "Hire Date")
    assert len(data.rows) == 3
    assert data.rows[0] == {"NIP": 21608001, "Name": "Budi", "Name_2": "Budi S.", "Hire Date": datetime(2020, 1, 6)}
    assert data.rows[2]["NIP"] == "21608002"


def test_sheet_selection_by_name_and_index(tmp_path):
    path = _write_workbook(tmp_path)

    assert read_sheet_rows(path, "Departments").name == "Departments"
    assert read_sheet_rows(path, 1).name == "Departments"
    with pytest.raises(InputFileError, match="no sheet named"):
        read_sheet_rows(path, "Payroll")
    with pytest.raises(InputFileError, match="no sheet at index"):
        read_sheet_rows(path, 5)


def test_corrupt_workbook_is_an_input_error(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"this is not a zip archive")

    with pytest.raises(InputFileError, match="Could not read workbook"):
        read_workbook(path)
