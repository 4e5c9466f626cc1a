"""
CLI commands for the import engine (``flask importer ...``).
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

import click
from flask.cli import ScriptInfo, with_appcontext
from sqlalchemy.exc import NoResultFound

from compliance_app.models.base import db
from compliance_app.utils.importer import get_max_upload_bytes, get_report_limits, is_importer_enabled

from .adapters import read_csv_rows, read_sheet_rows
from .contracts import CONTRACTS
from .errors import InputFileError, PersistenceError
from .pipeline import (
    SYNC_MODES,
    ImportBatchService,
    ImportCoordinator,
    ImportOptions,
    ReportGenerator,
    StatusEngine,
    WorkbookImporter,
    refresh_certificate_statuses,
)
from .utils import TABULAR_EXTENSIONS, WORKBOOK_EXTENSIONS, file_extension


@click.group(name="importer", invoke_without_command=True)
@click.pass_context
def importer_cli(ctx):
    """
    Compliance import engine commands.

    Lists the supported import subjects when invoked without a subcommand.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_importer_enabled(app):
        raise click.ClickException("Importer is disabled via IMPORTER_ENABLED=false.")
    if ctx.invoked_subcommand is None:
        click.echo("Supported import subjects:")
        for subject in CONTRACTS:
            click.echo(f"  - {subject}")


def get_disabled_importer_group() -> click.Group:
    """
    Return a minimal command group that informs the operator the importer is disabled.
    """

    @click.group(name="importer", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Importer commands are unavailable because IMPORTER_ENABLED=false.")

    return disabled_group


_IMPORT_OPTIONS = (
    click.option("--dry-run", is_flag=True, help="Validate and classify rows without writing anything."),
    click.option(
        "--update-existing/--no-update-existing",
        default=None,
        help="Update entities that already exist (default: skip them).",
    ),
    click.option(
        "--create-missing/--no-create-missing",
        default=None,
        help="Create referenced departments and certificate types that do not exist yet.",
    ),
    click.option(
        "--sync-mode",
        type=click.Choice(SYNC_MODES),
        default=None,
        help="replace reconciles stored entities absent from the upload.",
    ),
    click.option("--hard-delete", is_flag=True, help="Delete instead of deactivating during replace reconciliation."),
    click.option("--summary-json", is_flag=True, help="Emit a machine-readable summary after the text report."),
)


def _import_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``run`` and ``run-workbook``."""
    for option in reversed(_IMPORT_OPTIONS):
        func = option(func)
    return func


def _build_options(
    app,
    *,
    dry_run: bool,
    update_existing: Optional[bool],
    create_missing: Optional[bool],
    sync_mode: Optional[str],
    hard_delete: bool,
) -> ImportOptions:
    try:
        return ImportOptions.from_config(
            app.config,
            dry_run=dry_run,
            update_existing=update_existing,
            create_missing=create_missing,
            sync_mode=sync_mode,
            soft_delete=False if hard_delete else None,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _check_file(app, file_path: Path, allowed: tuple[str, ...]) -> str:
    extension = file_extension(file_path)
    if extension not in allowed:
        raise click.ClickException(
            f"Unsupported file type '.{extension}'. Expected one of: {', '.join('.' + ext for ext in allowed)}."
        )
    limit = get_max_upload_bytes(app)
    if file_path.stat().st_size > limit:
        raise click.ClickException(f"{file_path.name} exceeds the {limit // (1024 * 1024)} MB upload limit.")
    return extension


def _report_generator(app) -> ReportGenerator:
    max_errors, max_warnings = get_report_limits(app)
    return ReportGenerator(max_errors=max_errors, max_warnings=max_warnings)


def _fail_with_report(app, exc: PersistenceError) -> None:
    if exc.report is not None:
        click.echo(_report_generator(app).render_text(exc.report), err=True)
    raise click.ClickException(f"Import batch {exc.batch_id} failed and was rolled back: {exc}") from exc


@importer_cli.command("run")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="CSV or XLSX file to import.",
)
@click.option("--subject", required=True, type=click.Choice(tuple(CONTRACTS)), help="What the rows describe.")
@click.option("--sheet", default=None, help="Worksheet name for XLSX input (default: first sheet).")
@_import_options
@with_appcontext
@click.pass_context
def importer_run(
    ctx,
    file_path: Path,
    subject: str,
    sheet: Optional[str],
    dry_run: bool,
    update_existing: Optional[bool],
    create_missing: Optional[bool],
    sync_mode: Optional[str],
    hard_delete: bool,
    summary_json: bool,
):
    """Import one file (one subject) as a single batch."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    extension = _check_file(app, file_path, TABULAR_EXTENSIONS)
    options = _build_options(
        app,
        dry_run=dry_run,
        update_existing=update_existing,
        create_missing=create_missing,
        sync_mode=sync_mode,
        hard_delete=hard_delete,
    )

    try:
        if extension == "csv":
            rows = read_csv_rows(file_path).rows
            sheet_name = None
        else:
            data = read_sheet_rows(file_path, sheet)
            rows, sheet_name = data.rows, data.name
    except InputFileError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        report = ImportCoordinator(db.session).process(
            rows,
            subject=subject,
            options=options,
            source_name=file_path.name,
            sheet_name=sheet_name,
        )
    except PersistenceError as exc:
        _fail_with_report(app, exc)

    generator = _report_generator(app)
    click.echo(generator.render_text(report))
    if summary_json:
        click.echo(json.dumps(generator.summarize(report, include_outcomes=False), indent=2))


@importer_cli.command("run-workbook")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Multi-sheet XLSX workbook.",
)
@_import_options
@with_appcontext
@click.pass_context
def importer_run_workbook(
    ctx,
    file_path: Path,
    dry_run: bool,
    update_existing: Optional[bool],
    create_missing: Optional[bool],
    sync_mode: Optional[str],
    hard_delete: bool,
    summary_json: bool,
):
    """Import every recognised sheet of a workbook, one batch per sheet."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    _check_file(app, file_path, WORKBOOK_EXTENSIONS)
    options = _build_options(
        app,
        dry_run=dry_run,
        update_existing=update_existing,
        create_missing=create_missing,
        sync_mode=sync_mode,
        hard_delete=hard_delete,
    )
    try:
        workbook = WorkbookImporter(ImportCoordinator(db.session)).import_file(file_path, options=options)
    except InputFileError as exc:
        raise click.ClickException(str(exc)) from exc

    generator = _report_generator(app)
    click.echo(generator.render_workbook_text(workbook))
    if summary_json:
        click.echo(json.dumps(generator.summarize_workbook(workbook), indent=2))


@importer_cli.command("refresh-statuses")
@click.option(
    "--as-of",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Evaluate statuses as of this date (default: today).",
)
@click.option("--dry-run", is_flag=True, help="Report transitions without saving them.")
@with_appcontext
@click.pass_context
def importer_refresh_statuses(ctx, as_of: Optional[datetime], dry_run: bool):
    """Recompute status and compliance status for every certificate record."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    engine = StatusEngine(default_warning_days=int(app.config.get("IMPORTER_DEFAULT_WARNING_DAYS", 30)))
    summary = refresh_certificate_statuses(
        db.session,
        as_of=as_of.date() if as_of else None,
        status_engine=engine,
        commit=not dry_run,
    )
    if dry_run:
        db.session.rollback()

    click.echo(
        f"Checked {summary.records_checked} certificate record(s) as of {summary.as_of.isoformat()}; "
        f"{summary.records_changed} status change(s){' (dry run, not saved)' if dry_run else ''}."
    )
    for transition in summary.transitions:
        previous = transition.previous_status.value if transition.previous_status else "none"
        label = transition.certificate_number or f"record {transition.record_id}"
        click.echo(f"  - {label}: {previous} -> {transition.status.value}")


@importer_cli.command("batches")
@click.option("--subject", type=click.Choice(tuple(CONTRACTS)), default=None, help="Only batches for this subject.")
@click.option("--status", "status_filter", default=None, help="Only batches with this status.")
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True)
@click.option("--batch-id", default=None, help="Show one batch with its row outcomes.")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of text.")
@with_appcontext
@click.pass_context
def importer_batches(
    ctx,
    subject: Optional[str],
    status_filter: Optional[str],
    limit: int,
    batch_id: Optional[str],
    as_json: bool,
):
    """List recorded import batches, or show the row outcomes of one batch."""
    service = ImportBatchService(db.session)

    if batch_id:
        try:
            batch = service.get_batch(batch_id)
        except NoResultFound as exc:
            raise click.ClickException(str(exc)) from exc
        summary = service.summarize(batch)
        if as_json:
            payload = summary.as_dict()
            payload["outcomes"] = [
                {
                    "row": outcome.row_number,
                    "outcome": outcome.outcome.value,
                    "natural_key": outcome.natural_key,
                    "detail": outcome.detail,
                    "warnings": outcome.warnings or [],
                }
                for outcome in batch.row_outcomes
            ]
            click.echo(json.dumps(payload, indent=2))
            return
        click.echo(f"Batch {summary.batch_id} ({summary.subject}) status={summary.status}")
        if summary.error_summary:
            click.echo(f"  error: {summary.error_summary}")
        for outcome in batch.row_outcomes:
            detail = f" {outcome.detail}" if outcome.detail else ""
            click.echo(f"  row {outcome.row_number}: {outcome.outcome.value}{detail}")
        return

    try:
        summaries = service.list_batches(subject=subject, status=status_filter, limit=limit)
    except ValueError as exc:
        raise click.ClickException(f"Unknown batch status '{status_filter}'.") from exc

    if as_json:
        click.echo(json.dumps([summary.as_dict() for summary in summaries], indent=2))
        return
    if not summaries:
        click.echo("No import batches recorded.")
        return
    for summary in summaries:
        counts = summary.counts
        click.echo(
            f"{summary.batch_id}  {summary.subject:<20} {summary.status:<10} "
            f"rows={counts.get('total_rows', 0)} created={counts.get('created', 0)} "
            f"updated={counts.get('updated', 0)} errors={counts.get('errors', 0)}"
        )
