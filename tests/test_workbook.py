from datetime import date, datetime
from pathlib import Path

from openpyxl import Workbook

from compliance_app.importer.pipeline import WorkbookImporter
from compliance_app.models import CertificateRecord, CertificateStatus, Department, Employee, ImportBatch


def _build_workbook(tmp_path: Path) -> Path:
    workbook = Workbook()
    records = workbook.active
    records.title = "Training Records"
    records.append(["NIP", "Nama", "Training Name", "Issue Date"])
    records.append([21608001, "Budi", "K3 Umum", datetime(2024, 1, 15)])
    records.append([21608009, "Nobody", "K3 Umum", datetime(2024, 1, 15)])

    employees = workbook.create_sheet("Data Pegawai")
    employees.append(["NIP", "Nama Lengkap", "Departemen", "Tanggal Masuk"])
    employees.append([21608001, "Budi", "Operations", datetime(2020, 1, 6)])

    departments = workbook.create_sheet("Departemen")
    departments.append(["Kode", "Nama Departemen"])
    departments.append(["OPS", "Operations"])

    types = workbook.create_sheet("Training Types")
    types.append(["Kode Training", "Nama Training", "Masa Berlaku"])
    types.append(["K3UMUM", "K3 Umum", 12])

    notes = workbook.create_sheet("Notes")
    notes.append(["Anything"])
    notes.append(["free text"])

    empty = workbook.create_sheet("Sertifikat Lama")
    empty.append(["NIP", "Nama"])

    path = tmp_path / "hr_master.xlsx"
    workbook.save(path)
    return path


def _sheet_report(workbook, subject):
    # "Sertifikat Lama" also maps to certificate records but has no report.
    return next(sheet.report for sheet in workbook.sheets if sheet.subject == subject and sheet.report is not None)


def test_sheets_run_in_dependency_order(coordinator, tmp_path):
    workbook = WorkbookImporter(coordinator).import_file(_build_workbook(tmp_path))

    processed = [(sheet.sheet_name, sheet.subject) for sheet in workbook.sheets if sheet.report is not None]
    assert processed == [
        ("Departemen", "departments"),
        ("Training Types", "certificate_types"),
        ("Data Pegawai", "employees"),
        ("Training Records", "certificate_records"),
    ]
    assert workbook.source_name == "hr_master.xlsx"
    assert ImportBatch.query.count() == 4

    employee = Employee.query.filter_by(employee_id="21608001").one()
    assert employee.department.code == "OPS"
    assert employee.hire_date == date(2020, 1, 6)
    assert Department.query.count() == 1

    record = CertificateRecord.query.one()
    assert record.employee_id == employee.id
    assert record.expiry_date == date(2025, 1, 15)
    assert record.status == CertificateStatus.ACTIVE


def test_unrecognised_and_empty_sheets_are_skipped(coordinator, tmp_path):
    workbook = WorkbookImporter(coordinator).import_file(_build_workbook(tmp_path))

    skipped = {sheet.sheet_name: sheet.skipped_reason for sheet in workbook.sheets if sheet.report is None}
    assert skipped == {"Notes": "unrecognised sheet name", "Sertifikat Lama": "no data rows"}
    assert workbook.warnings == ["Sheet 'Notes' skipped: unrecognised sheet name"]


def test_row_errors_stay_inside_their_sheet(coordinator, tmp_path):
    workbook = WorkbookImporter(coordinator).import_file(_build_workbook(tmp_path))

    totals = workbook.totals()
    assert totals["total_rows"] == 5
    assert totals["created"] == 4
    assert totals["errors"] == 1
    records_report = _sheet_report(workbook, "certificate_records")
    assert records_report.outcomes[1].detail == "Employee '21608009' not found"


def test_dry_run_workbook_resolves_across_sheets(coordinator, tmp_path):
    options = coordinator.options(dry_run=True)

    workbook = WorkbookImporter(coordinator).import_file(_build_workbook(tmp_path), options=options)

    assert workbook.dry_run is True
    assert Department.query.count() == 0
    assert Employee.query.count() == 0
    assert ImportBatch.query.count() == 0
    employees_report = _sheet_report(workbook, "employees")
    assert employees_report.created == 1
    assert "department" not in employees_report.entity_counts
    records_report = _sheet_report(workbook, "certificate_records")
    assert records_report.created == 1
    assert "certificate_type" not in records_report.entity_counts
