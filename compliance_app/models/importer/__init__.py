"""
Importer-specific SQLAlchemy models: batches and per-row outcomes.
"""

from .schema import BatchAlreadyFinalized, ImportBatch, ImportBatchStatus, ImportRowOutcome, RowOutcomeKind

__all__ = [
    "BatchAlreadyFinalized",
    "ImportBatch",
    "ImportBatchStatus",
    "ImportRowOutcome",
    "RowOutcomeKind",
]
