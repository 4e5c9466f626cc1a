"""
Import pipeline: normalization, resolution, status derivation, batch
coordination, reconciliation and reporting.
"""

from .batches import BatchSummary, ImportBatchService
from .context import SYNC_MODES, BatchContext, ImportOptions
from .coordinator import ImportCoordinator
from .dates import DateParser
from .normalize import NormalizedRow, RowNormalizer
from .reconcile import SyncReconciler
from .refresh import RefreshSummary, StatusTransition, refresh_certificate_statuses
from .report import BatchReport, ReportGenerator, RowOutcome, SheetResult, SyncAction, WorkbookReport
from .resolver import EntityResolver, Resolution
from .sequence import CertificateNumberSequence, next_sequence
from .status import StatusEngine
from .workbook import WorkbookImporter

__all__ = [
    "BatchContext",
    "BatchReport",
    "BatchSummary",
    "CertificateNumberSequence",
    "DateParser",
    "EntityResolver",
    "ImportBatchService",
    "ImportCoordinator",
    "ImportOptions",
    "NormalizedRow",
    "RefreshSummary",
    "ReportGenerator",
    "Resolution",
    "RowNormalizer",
    "RowOutcome",
    "SYNC_MODES",
    "SheetResult",
    "StatusEngine",
    "StatusTransition",
    "SyncAction",
    "SyncReconciler",
    "WorkbookImporter",
    "WorkbookReport",
    "next_sequence",
    "refresh_certificate_statuses",
]
