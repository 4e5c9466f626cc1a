"""
SQLAlchemy models recording import batches and their per-row outcomes.

A batch row is written before processing starts so a failure can be recorded
against it; row outcomes are only written when the batch commits.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import BaseModel, db, utcnow


class ImportBatchStatus(str, enum.Enum):
    """Lifecycle states for an import batch."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RowOutcomeKind(str, enum.Enum):
    """Terminal classification of one input row."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


class BatchAlreadyFinalized(RuntimeError):
    """Raised when a finalized batch is finalized a second time."""


class ImportBatch(BaseModel):
    """Metadata describing one execution of the import engine over one upload."""

    __tablename__ = "import_batches"

    id: Mapped[int] = mapped_column(primary_key=True)
    batch_id: Mapped[str] = mapped_column(db.String(40), nullable=False, unique=True, index=True)
    subject: Mapped[str] = mapped_column(db.String(50), nullable=False, index=True)
    status: Mapped[ImportBatchStatus] = mapped_column(
        Enum(ImportBatchStatus, name="import_batch_status_enum"),
        nullable=False,
        default=ImportBatchStatus.PENDING,
        index=True,
    )
    dry_run: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    source_name: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    sheet_name: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    options_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    finished_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    counts_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    metrics_json: Mapped[dict | None] = mapped_column(
        db.JSON,
        nullable=True,
        comment="Per-entity created/updated counts and reconciliation actions.",
    )
    error_summary: Mapped[str | None] = mapped_column(db.Text, nullable=True)

    row_outcomes = relationship(
        "ImportRowOutcome",
        back_populates="batch",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ImportRowOutcome.row_number",
    )

    def __repr__(self) -> str:
        status = self.status.value if self.status else "new"
        return f"<ImportBatch {self.batch_id} {self.subject} {status}>"

    @property
    def is_finalized(self) -> bool:
        return self.finished_at is not None

    def finalize(
        self,
        status: ImportBatchStatus,
        *,
        counts: dict | None = None,
        metrics: dict | None = None,
        error_summary: str | None = None,
        finished_at: datetime | None = None,
    ) -> None:
        """Close the batch; counters are frozen from this point on."""

        if self.is_finalized:
            raise BatchAlreadyFinalized(f"Import batch {self.batch_id} is already finalized.")
        self.status = status
        if counts is not None:
            self.counts_json = counts
        if metrics is not None:
            self.metrics_json = metrics
        if error_summary is not None:
            self.error_summary = error_summary
        self.finished_at = finished_at or utcnow()


class ImportRowOutcome(BaseModel):
    """Outcome recorded for a single input row of a committed batch."""

    __tablename__ = "import_row_outcomes"

    id: Mapped[int] = mapped_column(primary_key=True)
    import_batch_id: Mapped[int] = mapped_column(
        ForeignKey("import_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    row_number: Mapped[int] = mapped_column(db.Integer, nullable=False)
    outcome: Mapped[RowOutcomeKind] = mapped_column(
        Enum(RowOutcomeKind, name="import_row_outcome_enum"),
        nullable=False,
        index=True,
    )
    entity_kind: Mapped[str] = mapped_column(db.String(50), nullable=False)
    natural_key: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    detail: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    changed_fields: Mapped[list | None] = mapped_column(db.JSON, nullable=True)
    warnings: Mapped[list | None] = mapped_column(db.JSON, nullable=True)
    input_snapshot: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)

    batch = relationship("ImportBatch", back_populates="row_outcomes")

    __table_args__ = (Index("idx_row_outcome_batch_row", "import_batch_id", "row_number"),)

    def __repr__(self) -> str:
        return f"<ImportRowOutcome batch={self.import_batch_id} row={self.row_number} {self.outcome.value}>"
