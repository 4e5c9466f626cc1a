"""
Import coordinator: runs one upload (one subject) through a strategy as a
single batch.

Live batches follow the run lifecycle used across the importer: the
``ImportBatch`` row is committed as RUNNING before any row is touched, every
entity write of the batch then shares one transaction, and the row outcomes
are added only when that transaction commits. A storage failure rolls the
whole batch back, marks the batch FAILED and surfaces as
``PersistenceError`` carrying the report assembled so far.

Dry runs walk the same path without adding anything to the session.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from compliance_app.models import db
from compliance_app.models.base import utcnow
from compliance_app.models.importer.schema import ImportBatch, ImportBatchStatus, ImportRowOutcome, RowOutcomeKind

from ..errors import DuplicateError, PersistenceError, RowError, ValidationError
from ..metrics import record_batch
from ..utils import ensure_json_serializable, generate_batch_id
from .context import BatchContext, ImportOptions
from .normalize import RowNormalizer
from .reconcile import SyncReconciler
from .report import BatchReport, RowOutcome
from .resolver import EntityResolver
from .sequence import CertificateNumberSequence
from .status import StatusEngine
from .strategies import ImportStrategy, get_strategy

NATURAL_KEY_MAX_LENGTH = 255


def _config_value(config: Mapping[str, Any], key: str, default: Any) -> Any:
    value = config.get(key)
    return default if value is None else value


class ImportCoordinator:
    """Process tabular rows for one subject and record the batch."""

    def __init__(
        self,
        session: Session | None = None,
        *,
        status_engine: StatusEngine | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        self.session: Session = session or db.session
        if config is None:
            config = current_app.config if has_app_context() else {}
        self.config = config
        self.default_warning_days = int(_config_value(config, "IMPORTER_DEFAULT_WARNING_DAYS", 30))
        self.status_engine = status_engine or StatusEngine(default_warning_days=self.default_warning_days)

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------

    def options(self, **overrides: Any) -> ImportOptions:
        """Options seeded from configuration; ``None`` overrides are ignored."""

        return ImportOptions.from_config(self.config, **overrides)

    def new_resolver(self, options: ImportOptions) -> EntityResolver:
        return EntityResolver(
            self.session,
            dry_run=options.dry_run,
            create_missing=options.create_missing,
            default_warning_days=self.default_warning_days,
            auto_type_warning_days=int(_config_value(self.config, "IMPORTER_AUTO_TYPE_WARNING_DAYS", 90)),
            default_validity_months=int(_config_value(self.config, "IMPORTER_DEFAULT_VALIDITY_MONTHS", 36)),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(
        self,
        rows: Iterable[Mapping[Any, Any]],
        *,
        subject: str,
        options: ImportOptions | None = None,
        source_name: str | None = None,
        sheet_name: str | None = None,
        resolver: EntityResolver | None = None,
    ) -> BatchReport:
        strategy = get_strategy(subject)
        options = options or self.options()
        rows = list(rows)
        started_at = utcnow()

        report = BatchReport(
            batch_id=generate_batch_id(started_at),
            subject=strategy.subject,
            entity_kind=strategy.entity_kind,
            dry_run=options.dry_run,
            started_at=started_at,
            source_name=source_name,
            sheet_name=sheet_name,
            options=options.as_dict(),
            total_rows=len(rows),
        )
        batch = ImportBatch(
            batch_id=report.batch_id,
            subject=strategy.subject,
            status=ImportBatchStatus.RUNNING,
            dry_run=options.dry_run,
            source_name=source_name,
            sheet_name=sheet_name,
            options_json=ensure_json_serializable(options.as_dict()),
            started_at=started_at,
        )
        batch_pk: int | None = None
        if not options.dry_run:
            self.session.add(batch)
            self.session.commit()
            batch_pk = batch.id

        resolver = resolver or self.new_resolver(options)
        resolver.listener = report.count_entity
        ctx = BatchContext(
            session=self.session,
            options=options,
            report=report,
            resolver=resolver,
            status_engine=self.status_engine,
            default_warning_days=self.default_warning_days,
        )
        self._log_start(report)

        try:
            if subject == "certificate_records":
                ctx.sequence = CertificateNumberSequence.from_storage(self.session, options.provider_code)
            self._warn_unmapped_headers(strategy, rows, report)
            processed_keys = self._process_rows(strategy, rows, ctx)
            self._reconcile(strategy, processed_keys, ctx)
            if options.dry_run:
                report.finalize(ImportBatchStatus.SUCCEEDED, finished_at=utcnow())
            else:
                resolver.verify_generated_codes()
                finished_at = utcnow()
                self._attach_outcomes(batch, report)
                batch.finalize(
                    ImportBatchStatus.SUCCEEDED,
                    counts=report.counts(),
                    metrics=self._metrics_payload(report),
                    finished_at=finished_at,
                )
                self.session.commit()
                report.finalize(ImportBatchStatus.SUCCEEDED, finished_at=finished_at)
        except PersistenceError as exc:
            self._fail(batch_pk, report, exc)
            exc.batch_id = report.batch_id
            exc.report = report
            raise
        except SQLAlchemyError as exc:
            self._fail(batch_pk, report, exc)
            raise PersistenceError(
                f"Import batch {report.batch_id} rolled back: {exc}",
                batch_id=report.batch_id,
                report=report,
            ) from exc
        except Exception as exc:
            self._fail(batch_pk, report, exc)
            raise

        record_batch(report)
        self._log_completion(report)
        return report

    # ------------------------------------------------------------------
    # Row handling
    # ------------------------------------------------------------------

    def _process_rows(self, strategy: ImportStrategy, rows: list[Mapping[Any, Any]], ctx: BatchContext) -> set[str]:
        normalizer = RowNormalizer(strategy.contract)
        seen: dict[str, int] = {}
        processed_keys: set[str] = set()
        for index, raw_row in enumerate(rows):
            # Row 1 is the header row.
            row_number = index + 2
            ctx.start_row()
            outcome = self._process_row(strategy, normalizer, raw_row, row_number, ctx, seen, processed_keys)
            ctx.report.append(outcome)
        return processed_keys

    def _process_row(
        self,
        strategy: ImportStrategy,
        normalizer: RowNormalizer,
        raw_row: Mapping[Any, Any],
        row_number: int,
        ctx: BatchContext,
        seen: dict[str, int],
        processed_keys: set[str],
    ) -> RowOutcome:
        row = normalizer.normalize(raw_row)
        snapshot = ensure_json_serializable(row.raw)

        def outcome(kind: RowOutcomeKind, detail: str | None, **extra: Any) -> RowOutcome:
            return RowOutcome(
                row_number=row_number,
                outcome=kind,
                entity_kind=strategy.entity_kind,
                detail=detail,
                warnings=ctx.take_warnings(),
                input_snapshot=snapshot,
                **extra,
            )

        if normalizer.is_empty_row(row):
            return outcome(RowOutcomeKind.SKIPPED, "empty row")

        natural_key: str | None = None
        try:
            missing = normalizer.missing_required(row)
            if missing:
                raise ValidationError.missing_fields(missing)

            payload = strategy.prepare(row, ctx)
            natural_key = strategy.natural_key(payload)
            if natural_key is not None:
                if natural_key in seen:
                    raise DuplicateError(natural_key, first_row=seen[natural_key])
                seen[natural_key] = row_number

            refs = strategy.resolve(payload, ctx)
            if strategy.reconcilable:
                processed_keys.update(strategy.referenced_keys(refs))
            existing = strategy.find_existing(payload, refs, ctx)
            if existing is not None:
                if strategy.reconcilable:
                    processed_keys.add(strategy.entity_key(existing))
                if not ctx.options.update_existing:
                    return outcome(RowOutcomeKind.SKIPPED, "already exists", natural_key=natural_key)
                self._complete_references(strategy, payload, refs, ctx, processed_keys)
                changes = strategy.changes(existing, payload, refs, ctx)
                if not changes:
                    return outcome(RowOutcomeKind.SKIPPED, "no changes", natural_key=natural_key)
                if ctx.dry_run:
                    ctx.count_entity(strategy.entity_kind, "updated")
                else:
                    strategy.apply_changes(existing, changes, payload, refs, ctx)
                return outcome(
                    RowOutcomeKind.UPDATED,
                    f"Updated {', '.join(changes)}",
                    natural_key=natural_key,
                    changed_fields=tuple(changes),
                )

            self._complete_references(strategy, payload, refs, ctx, processed_keys)
            entity = strategy.create(payload, refs, ctx)
            if strategy.reconcilable:
                processed_keys.add(strategy.entity_key(entity))
            return outcome(RowOutcomeKind.CREATED, strategy.describe(entity), natural_key=natural_key)
        except RowError as exc:
            return outcome(RowOutcomeKind.ERROR, exc.message, natural_key=natural_key)

    @staticmethod
    def _complete_references(
        strategy: ImportStrategy,
        payload: dict[str, Any],
        refs: dict[str, Any],
        ctx: BatchContext,
        processed_keys: set[str],
    ) -> None:
        strategy.complete_references(payload, refs, ctx)
        if strategy.reconcilable:
            # Entities the upload points at count as present for replace sync.
            processed_keys.update(strategy.referenced_keys(refs))

    def _warn_unmapped_headers(
        self, strategy: ImportStrategy, rows: list[Mapping[Any, Any]], report: BatchReport
    ) -> None:
        headers: dict[str, None] = {}
        for row in rows:
            headers.update((str(header), None) for header in row if header is not None)
        ignored = RowNormalizer(strategy.contract).unmapped_headers(headers)
        if ignored:
            report.add_warning(f"Ignored unrecognised column(s): {', '.join(ignored)}")

    def _reconcile(self, strategy: ImportStrategy, processed_keys: set[str], ctx: BatchContext) -> None:
        if not ctx.options.reconciles:
            return
        if not strategy.reconcilable:
            ctx.report.add_warning(
                f"sync_mode=replace does not apply to {strategy.subject}; stored records were left untouched"
            )
            return
        reconciler = SyncReconciler(self.session, dry_run=ctx.dry_run)
        reconciler.reconcile(strategy, processed_keys, soft_delete=ctx.options.soft_delete, report=ctx.report)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _attach_outcomes(self, batch: ImportBatch, report: BatchReport) -> None:
        for outcome in report.outcomes:
            natural_key = outcome.natural_key[:NATURAL_KEY_MAX_LENGTH] if outcome.natural_key else None
            batch.row_outcomes.append(
                ImportRowOutcome(
                    row_number=outcome.row_number,
                    outcome=outcome.outcome,
                    entity_kind=outcome.entity_kind,
                    natural_key=natural_key,
                    detail=outcome.detail,
                    changed_fields=list(outcome.changed_fields) or None,
                    warnings=list(outcome.warnings) or None,
                    input_snapshot=ensure_json_serializable(dict(outcome.input_snapshot)),
                )
            )

    @staticmethod
    def _metrics_payload(report: BatchReport) -> dict[str, Any]:
        return {
            "entity_counts": {kind: dict(counts) for kind, counts in report.entity_counts.items()},
            "sync_actions": [action.as_dict() for action in report.sync_actions],
            "batch_warnings": list(report.batch_warnings),
            "success_rate": report.success_rate,
        }

    def _fail(self, batch_pk: int | None, report: BatchReport, exc: BaseException) -> None:
        self.session.rollback()
        finished_at = utcnow()
        if batch_pk is not None:
            recovery = self.session.get(ImportBatch, batch_pk)
            if recovery is not None and not recovery.is_finalized:
                recovery.finalize(
                    ImportBatchStatus.FAILED,
                    counts=report.counts(),
                    metrics=self._metrics_payload(report),
                    error_summary=str(exc),
                    finished_at=finished_at,
                )
                self.session.commit()
        if report.finished_at is None:
            report.finalize(ImportBatchStatus.FAILED, finished_at=finished_at, error=str(exc))
        record_batch(report)
        if has_app_context():
            current_app.logger.exception(
                "Import batch failed",
                extra={
                    "import_batch_id": report.batch_id,
                    "import_subject": report.subject,
                    "import_rows_seen": len(report.outcomes),
                    "import_error": str(exc),
                },
            )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _log_start(self, report: BatchReport) -> None:
        if has_app_context():
            current_app.logger.info(
                "Import batch started",
                extra={
                    "import_batch_id": report.batch_id,
                    "import_subject": report.subject,
                    "import_total_rows": report.total_rows,
                    "import_dry_run": report.dry_run,
                    "import_source": report.source_name,
                },
            )

    def _log_completion(self, report: BatchReport) -> None:
        if not has_app_context():
            return
        counts = report.counts()
        current_app.logger.info(
            "Import batch completed",
            extra={
                "import_batch_id": report.batch_id,
                "import_subject": report.subject,
                "import_status": report.status.value,
                "import_dry_run": report.dry_run,
                "import_rows_processed": counts["processed"],
                "import_rows_created": counts["created"],
                "import_rows_updated": counts["updated"],
                "import_rows_skipped": counts["skipped"],
                "import_rows_errored": counts["errors"],
                "import_sync_actions": len(report.sync_actions),
            },
        )
