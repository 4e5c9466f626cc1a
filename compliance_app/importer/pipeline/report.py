"""
In-memory batch outcomes and their renderings.

``BatchReport`` is what callers receive from the coordinator: counters, the
per-row outcome list and reconciliation actions. ``ReportGenerator`` turns a
report into a structured summary and a bounded text report.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from compliance_app.models.importer.schema import ImportBatchStatus, RowOutcomeKind

from ..utils import ensure_json_serializable

DEFAULT_MAX_ERRORS = 20
DEFAULT_MAX_WARNINGS = 10
WORKBOOK_TOP_ERRORS = 3


@dataclass(frozen=True)
class RowOutcome:
    """Classification of one input row. Never mutated once appended."""

    row_number: int
    outcome: RowOutcomeKind
    entity_kind: str
    natural_key: str | None = None
    detail: str | None = None
    changed_fields: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    input_snapshot: Mapping[str, Any] = field(default_factory=dict)

    @property
    def counts_as_processed(self) -> bool:
        """Rows handled successfully: written, or already present in storage."""

        if self.outcome in (RowOutcomeKind.CREATED, RowOutcomeKind.UPDATED):
            return True
        return self.outcome == RowOutcomeKind.SKIPPED and self.detail != "empty row"

    def as_dict(self) -> dict[str, Any]:
        return {
            "row": self.row_number,
            "outcome": self.outcome.value,
            "entity_kind": self.entity_kind,
            "natural_key": self.natural_key,
            "detail": self.detail,
            "changed_fields": list(self.changed_fields),
            "warnings": list(self.warnings),
            "input": ensure_json_serializable(dict(self.input_snapshot)),
        }


@dataclass(frozen=True)
class SyncAction:
    """Reconciliation applied to an entity absent from a replace-mode upload."""

    entity_kind: str
    natural_key: str
    action: str  # "deactivated" | "deleted"
    name: str | None = None
    reason: str = "not present in upload"

    def as_dict(self) -> dict[str, Any]:
        return {
            "entity_kind": self.entity_kind,
            "natural_key": self.natural_key,
            "name": self.name,
            "action": self.action,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ReportMessage:
    row_number: int | None
    message: str

    def render(self) -> str:
        return f"Row {self.row_number}: {self.message}" if self.row_number is not None else self.message


@dataclass
class BatchReport:
    """Outcome of one batch; mutable only until the batch is finalized."""

    batch_id: str
    subject: str
    entity_kind: str
    dry_run: bool
    started_at: datetime
    source_name: str | None = None
    sheet_name: str | None = None
    options: Mapping[str, Any] = field(default_factory=dict)
    finished_at: datetime | None = None
    status: ImportBatchStatus = ImportBatchStatus.RUNNING
    error: str | None = None
    total_rows: int = 0
    outcomes: list[RowOutcome] = field(default_factory=list)
    sync_actions: list[SyncAction] = field(default_factory=list)
    batch_warnings: list[str] = field(default_factory=list)
    entity_counts: dict[str, dict[str, int]] = field(default_factory=dict)

    # -- mutation -----------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self.finished_at is not None:
            raise RuntimeError(f"Batch report {self.batch_id} is finalized.")

    def append(self, outcome: RowOutcome) -> None:
        self._ensure_open()
        self.outcomes.append(outcome)

    def add_sync_action(self, action: SyncAction) -> None:
        self._ensure_open()
        self.sync_actions.append(action)

    def add_warning(self, message: str) -> None:
        self._ensure_open()
        self.batch_warnings.append(message)

    def count_entity(self, entity_kind: str, action: str) -> None:
        self._ensure_open()
        bucket = self.entity_counts.setdefault(entity_kind, {"created": 0, "updated": 0})
        bucket[action] = bucket.get(action, 0) + 1

    def finalize(self, status: ImportBatchStatus, *, finished_at: datetime, error: str | None = None) -> None:
        self._ensure_open()
        self.status = status
        self.error = error
        self.finished_at = finished_at

    # -- counters -----------------------------------------------------------------

    def _outcome_count(self, kind: RowOutcomeKind) -> int:
        return sum(1 for outcome in self.outcomes if outcome.outcome == kind)

    @property
    def created(self) -> int:
        return self._outcome_count(RowOutcomeKind.CREATED)

    @property
    def updated(self) -> int:
        return self._outcome_count(RowOutcomeKind.UPDATED) + len(self.sync_actions)

    @property
    def skipped(self) -> int:
        return self._outcome_count(RowOutcomeKind.SKIPPED)

    @property
    def errors(self) -> int:
        return self._outcome_count(RowOutcomeKind.ERROR)

    @property
    def rows_processed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.counts_as_processed)

    @property
    def processed(self) -> int:
        return self.rows_processed + len(self.sync_actions)

    @property
    def warnings(self) -> int:
        return sum(len(outcome.warnings) for outcome in self.outcomes) + len(self.batch_warnings)

    # Sync actions touch stored entities, not upload rows, so they stay out of the rate.
    @property
    def success_rate(self) -> float:
        if not self.total_rows:
            return 0.0
        return round(self.rows_processed / self.total_rows * 100, 2)

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return round((self.finished_at - self.started_at).total_seconds(), 3)

    def counts(self) -> dict[str, int]:
        return {
            "total_rows": self.total_rows,
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.errors,
            "warnings": self.warnings,
        }

    def error_messages(self) -> list[ReportMessage]:
        return [
            ReportMessage(outcome.row_number, outcome.detail or "error")
            for outcome in self.outcomes
            if outcome.outcome == RowOutcomeKind.ERROR
        ]

    def warning_messages(self) -> list[ReportMessage]:
        messages = [ReportMessage(None, message) for message in self.batch_warnings]
        for outcome in self.outcomes:
            messages.extend(ReportMessage(outcome.row_number, warning) for warning in outcome.warnings)
        return messages

    def outcomes_by_kind(self, kind: RowOutcomeKind) -> list[RowOutcome]:
        return [outcome for outcome in self.outcomes if outcome.outcome == kind]


@dataclass
class SheetResult:
    sheet_name: str
    subject: str | None
    report: BatchReport | None = None
    skipped_reason: str | None = None


@dataclass
class WorkbookReport:
    """Aggregate of the per-sheet batches of one multi-sheet upload."""

    source_name: str | None
    dry_run: bool
    started_at: datetime
    finished_at: datetime | None = None
    sheets: list[SheetResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def reports(self) -> list[BatchReport]:
        return [sheet.report for sheet in self.sheets if sheet.report is not None]

    def totals(self) -> dict[str, int]:
        totals: Counter[str] = Counter()
        for report in self.reports:
            totals.update(report.counts())
        totals["warnings"] += len(self.warnings)
        keys = ("total_rows", "processed", "created", "updated", "skipped", "errors", "warnings")
        return {key: totals.get(key, 0) for key in keys}

    @property
    def success_rate(self) -> float:
        totals = self.totals()
        if not totals["total_rows"]:
            return 0.0
        rows_processed = sum(report.rows_processed for report in self.reports)
        return round(rows_processed / totals["total_rows"] * 100, 2)

    def recommendations(self) -> list[str]:
        totals = self.totals()
        recommendations: list[str] = []
        if totals["errors"]:
            recommendations.append("Review and fix errors in the data source before re-importing.")
        if totals["warnings"]:
            recommendations.append("Check warnings for data quality issues.")
        if any(
            outcome.detail == "already exists"
            for report in self.reports
            for outcome in report.outcomes_by_kind(RowOutcomeKind.SKIPPED)
        ):
            recommendations.append("Re-run with update_existing enabled to update records that already exist.")
        return recommendations


def _bounded(lines: Iterable[ReportMessage], limit: int, noun: str) -> list[str]:
    messages = list(lines)
    rendered = [f"- {message.render()}" for message in messages[:limit]]
    if len(messages) > limit:
        rendered.append(f"... and {len(messages) - limit} more {noun}")
    return rendered


class ReportGenerator:
    """Render batch and workbook reports."""

    def __init__(self, *, max_errors: int = DEFAULT_MAX_ERRORS, max_warnings: int = DEFAULT_MAX_WARNINGS) -> None:
        self.max_errors = max_errors
        self.max_warnings = max_warnings

    def summarize(self, report: BatchReport, *, include_outcomes: bool = True) -> dict[str, Any]:
        """Structured summary suitable for JSON responses."""

        summary: dict[str, Any] = {
            "batch_id": report.batch_id,
            "subject": report.subject,
            "entity_kind": report.entity_kind,
            "status": report.status.value,
            "dry_run": report.dry_run,
            "source_name": report.source_name,
            "sheet_name": report.sheet_name,
            "started_at": report.started_at.isoformat(),
            "finished_at": report.finished_at.isoformat() if report.finished_at else None,
            "duration_seconds": report.duration_seconds,
            "options": ensure_json_serializable(dict(report.options)),
            "counts": report.counts(),
            "success_rate": report.success_rate,
            "entity_counts": {kind: dict(counts) for kind, counts in report.entity_counts.items()},
            "sync_actions": [action.as_dict() for action in report.sync_actions],
            "error": report.error,
        }
        if include_outcomes:
            summary["outcomes"] = [outcome.as_dict() for outcome in report.outcomes]
        return summary

    def render_text(self, report: BatchReport) -> str:
        title = f"{report.subject.replace('_', ' ').title()} Import Report"
        counts = report.counts()
        lines = [
            title,
            "=" * len(title),
            "",
            "Batch Information:",
            f"- Batch ID: {report.batch_id}",
            f"- Status: {report.status.value}",
            f"- Mode: {'DRY RUN' if report.dry_run else 'LIVE IMPORT'}",
        ]
        if report.source_name:
            lines.append(f"- Source: {report.source_name}")
        if report.sheet_name:
            lines.append(f"- Sheet: {report.sheet_name}")
        if report.duration_seconds is not None:
            lines.append(f"- Processing Time: {report.duration_seconds} seconds")
        lines.extend(
            [
                "",
                "Summary:",
                f"- Total rows: {counts['total_rows']}",
                f"- Successfully processed: {counts['processed']}",
                f"- Records created: {counts['created']}",
                f"- Records updated: {counts['updated']}",
                f"- Rows skipped: {counts['skipped']}",
                f"- Errors: {counts['errors']}",
                f"- Warnings: {counts['warnings']}",
                f"- Success rate: {report.success_rate}%",
            ]
        )
        if report.error:
            lines.extend(["", f"Fatal error: {report.error}"])

        if report.sync_actions:
            lines.extend(["", "Synchronization:"])
            actions = Counter(action.action for action in report.sync_actions)
            lines.extend(f"- {action}: {count}" for action, count in sorted(actions.items()))

        errors = report.error_messages()
        if errors:
            lines.extend(["", "Errors:"])
            lines.extend(_bounded(errors, self.max_errors, "errors"))

        warnings = report.warning_messages()
        if warnings:
            lines.extend(["", "Warnings:"])
            lines.extend(_bounded(warnings, self.max_warnings, "warnings"))

        return "\n".join(lines) + "\n"

    def summarize_workbook(self, workbook: WorkbookReport) -> dict[str, Any]:
        sheets: list[dict[str, Any]] = []
        for sheet in workbook.sheets:
            entry: dict[str, Any] = {"sheet_name": sheet.sheet_name, "subject": sheet.subject}
            if sheet.report is None:
                entry["skipped_reason"] = sheet.skipped_reason
            else:
                entry.update(self.summarize(sheet.report, include_outcomes=False))
                entry["top_errors"] = [
                    message.render() for message in sheet.report.error_messages()[:WORKBOOK_TOP_ERRORS]
                ]
            sheets.append(entry)
        return {
            "source_name": workbook.source_name,
            "dry_run": workbook.dry_run,
            "started_at": workbook.started_at.isoformat(),
            "finished_at": workbook.finished_at.isoformat() if workbook.finished_at else None,
            "sheets_processed": len(workbook.reports),
            "totals": workbook.totals(),
            "success_rate": workbook.success_rate,
            "sheets": sheets,
            "warnings": list(workbook.warnings),
            "recommendations": workbook.recommendations(),
        }

    def render_workbook_text(self, workbook: WorkbookReport) -> str:
        title = "Workbook Import Report"
        totals = workbook.totals()
        lines = [
            title,
            "=" * len(title),
            "",
            f"Mode: {'DRY RUN' if workbook.dry_run else 'LIVE IMPORT'}",
            f"Sheets processed: {len(workbook.reports)}",
            "",
            "Overall Summary:",
            f"- Total rows: {totals['total_rows']}",
            f"- Successfully processed: {totals['processed']}",
            f"- Created: {totals['created']}",
            f"- Updated: {totals['updated']}",
            f"- Skipped: {totals['skipped']}",
            f"- Errors: {totals['errors']}",
            f"- Warnings: {totals['warnings']}",
            "",
            "Sheet Results:",
        ]
        for sheet in workbook.sheets:
            if sheet.report is None:
                lines.append(f"* {sheet.sheet_name}: skipped ({sheet.skipped_reason})")
                continue
            counts = sheet.report.counts()
            lines.append(
                f"* {sheet.sheet_name} -> {sheet.subject}: {counts['processed']}/{counts['total_rows']} processed, "
                f"{counts['created']} created, {counts['updated']} updated, {counts['errors']} errors"
            )
            errors = sheet.report.error_messages()
            lines.extend(f"  - {message.render()}" for message in errors[:WORKBOOK_TOP_ERRORS])
            if len(errors) > WORKBOOK_TOP_ERRORS:
                lines.append(f"  - ... and {len(errors) - WORKBOOK_TOP_ERRORS} more")

        if workbook.warnings:
            lines.extend(["", "Warnings:"])
            lines.extend(_bounded((ReportMessage(None, w) for w in workbook.warnings), self.max_warnings, "warnings"))

        lines.extend(["", f"Success Rate: {workbook.success_rate}%"])
        recommendations = workbook.recommendations()
        if recommendations:
            lines.extend(["", "Recommendations:"])
            lines.extend(f"- {item}" for item in recommendations)
        return "\n".join(lines) + "\n"
