"""
Service helpers for querying recorded import batches and their row outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session, selectinload

from compliance_app.models import db
from compliance_app.models.importer.schema import ImportBatch, ImportBatchStatus, ImportRowOutcome, RowOutcomeKind

DEFAULT_LIMIT = 20
MAX_LIMIT = 200


@dataclass(slots=True)
class BatchSummary:
    """Summarized representation of an import batch."""

    batch_id: str
    subject: str
    status: str
    dry_run: bool
    source_name: str | None
    sheet_name: str | None
    started_at: datetime | None
    finished_at: datetime | None
    duration_seconds: float | None
    counts: dict[str, Any]
    error_summary: str | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "subject": self.subject,
            "status": self.status,
            "dry_run": self.dry_run,
            "source_name": self.source_name,
            "sheet_name": self.sheet_name,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "counts": dict(self.counts),
            "error_summary": self.error_summary,
        }


class ImportBatchService:
    """Facade for reading import batch history."""

    def __init__(self, session: Session | None = None) -> None:
        self.session: Session = session or db.session

    def list_batches(
        self,
        *,
        subject: str | None = None,
        status: ImportBatchStatus | str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[BatchSummary]:
        limit = max(1, min(int(limit), MAX_LIMIT))
        stmt = select(ImportBatch)
        if subject:
            stmt = stmt.where(ImportBatch.subject == subject)
        if status:
            stmt = stmt.where(ImportBatch.status == ImportBatchStatus(status))
        stmt = stmt.order_by(ImportBatch.started_at.desc(), ImportBatch.id.desc()).limit(limit)
        return [self.summarize(batch) for batch in self.session.scalars(stmt)]

    def get_batch(self, batch_id: str) -> ImportBatch:
        batch = self.session.scalars(
            select(ImportBatch).options(selectinload(ImportBatch.row_outcomes)).where(ImportBatch.batch_id == batch_id)
        ).one_or_none()
        if batch is None:
            raise NoResultFound(f"Import batch {batch_id} not found.")
        return batch

    def outcomes(self, batch_id: str, *, outcome: RowOutcomeKind | str | None = None) -> list[ImportRowOutcome]:
        batch = self.get_batch(batch_id)
        if outcome is None:
            return list(batch.row_outcomes)
        kind = RowOutcomeKind(outcome)
        return [row for row in batch.row_outcomes if row.outcome == kind]

    def status_counts(self) -> dict[str, int]:
        rows = self.session.execute(select(ImportBatch.status, func.count()).group_by(ImportBatch.status))
        return {status.value: count for status, count in rows}

    @staticmethod
    def summarize(batch: ImportBatch) -> BatchSummary:
        duration = None
        if batch.started_at and batch.finished_at:
            duration = round((batch.finished_at - batch.started_at).total_seconds(), 3)
        return BatchSummary(
            batch_id=batch.batch_id,
            subject=batch.subject,
            status=batch.status.value,
            dry_run=batch.dry_run,
            source_name=batch.source_name,
            sheet_name=batch.sheet_name,
            started_at=batch.started_at,
            finished_at=batch.finished_at,
            duration_seconds=duration,
            counts=dict(batch.counts_json or {}),
            error_summary=batch.error_summary,
        )
