"""
Multi-sheet workbook import.

Each recognised sheet becomes its own batch. Sheets run in dependency order so
departments and certificate types exist before the employees and records that
reference them. A dry run shares one resolver across sheets, so rows of a
later sheet can resolve entities that an earlier sheet would have created.
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, Iterable

from flask import current_app, has_app_context

from compliance_app.models.base import utcnow

from ..adapters import SheetData, read_workbook
from ..contracts.sheets import SUBJECT_ORDER, match_sheet_subject
from ..errors import PersistenceError
from .context import ImportOptions
from .coordinator import ImportCoordinator
from .report import SheetResult, WorkbookReport


class WorkbookImporter:
    """Route workbook sheets to subjects and run them through the coordinator."""

    def __init__(self, coordinator: ImportCoordinator | None = None) -> None:
        self.coordinator = coordinator or ImportCoordinator()

    def plan(self, sheets: Iterable[SheetData], workbook: WorkbookReport) -> list[tuple[SheetData, str]]:
        """Match sheets to subjects; unrecognised or empty sheets are recorded as skipped."""

        planned: list[tuple[SheetData, str]] = []
        for sheet in sheets:
            subject = match_sheet_subject(sheet.name)
            if subject is None:
                workbook.sheets.append(SheetResult(sheet.name, None, skipped_reason="unrecognised sheet name"))
                workbook.warnings.append(f"Sheet '{sheet.name}' skipped: unrecognised sheet name")
                continue
            if not sheet.rows:
                workbook.sheets.append(SheetResult(sheet.name, subject, skipped_reason="no data rows"))
                continue
            planned.append((sheet, subject))
        # sorted() is stable, so sheets of the same subject keep workbook order.
        return sorted(planned, key=lambda item: SUBJECT_ORDER.index(item[1]))

    def import_sheets(
        self,
        sheets: Iterable[SheetData],
        *,
        options: ImportOptions | None = None,
        source_name: str | None = None,
    ) -> WorkbookReport:
        options = options or self.coordinator.options()
        workbook = WorkbookReport(source_name=source_name, dry_run=options.dry_run, started_at=utcnow())
        resolver = self.coordinator.new_resolver(options) if options.dry_run else None

        for sheet, subject in self.plan(sheets, workbook):
            try:
                report = self.coordinator.process(
                    sheet.rows,
                    subject=subject,
                    options=options,
                    source_name=source_name,
                    sheet_name=sheet.name,
                    resolver=resolver,
                )
            except PersistenceError as exc:
                workbook.sheets.append(SheetResult(sheet.name, subject, report=exc.report))
                workbook.warnings.append(f"Sheet '{sheet.name}' rolled back: {exc}")
                continue
            workbook.sheets.append(SheetResult(sheet.name, subject, report=report))

        workbook.finished_at = utcnow()
        if has_app_context():
            totals = workbook.totals()
            current_app.logger.info(
                "Workbook import completed",
                extra={
                    "import_source": source_name,
                    "import_dry_run": options.dry_run,
                    "import_sheets": len(workbook.reports),
                    "import_rows_processed": totals["processed"],
                    "import_rows_errored": totals["errors"],
                },
            )
        return workbook

    def import_file(
        self,
        source: str | Path | IO[bytes],
        *,
        options: ImportOptions | None = None,
        source_name: str | None = None,
    ) -> WorkbookReport:
        if source_name is None and isinstance(source, (str, Path)):
            source_name = Path(source).name
        return self.import_sheets(read_workbook(source), options=options, source_name=source_name)
