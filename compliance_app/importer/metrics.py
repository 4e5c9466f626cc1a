"""Prometheus metrics helpers for the importer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from prometheus_client import Counter, Histogram

if TYPE_CHECKING:  # pragma: no cover
    from .pipeline.refresh import StatusTransition
    from .pipeline.report import BatchReport

_batch_counter = Counter(
    "compliance_import_batches_total",
    "Import batches by subject, final status and mode.",
    ["subject", "status", "dry_run"],
)
_row_outcome_counter = Counter(
    "compliance_import_row_outcomes_total",
    "Classified import rows by subject and outcome.",
    ["subject", "outcome"],
)
_batch_duration = Histogram(
    "compliance_import_batch_duration_seconds",
    "Duration of import batch processing in seconds.",
    ["subject"],
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)
_sync_action_counter = Counter(
    "compliance_import_sync_actions_total",
    "Entities reconciled because they were absent from a replace upload.",
    ["entity_kind", "action"],
)
_status_transition_counter = Counter(
    "compliance_certificate_status_transitions_total",
    "Certificate status changes applied by the status refresh.",
    ["from_status", "to_status"],
)


def record_batch(report: "BatchReport") -> None:
    """Capture metrics for a finished (or failed) import batch."""

    _batch_counter.labels(
        subject=report.subject,
        status=report.status.value,
        dry_run="true" if report.dry_run else "false",
    ).inc()
    for outcome in report.outcomes:
        _row_outcome_counter.labels(subject=report.subject, outcome=outcome.outcome.value).inc()
    for action in report.sync_actions:
        _sync_action_counter.labels(entity_kind=action.entity_kind, action=action.action).inc()
    if report.duration_seconds is not None:
        _batch_duration.labels(subject=report.subject).observe(report.duration_seconds)


def record_status_transitions(transitions: Iterable["StatusTransition"]) -> None:
    for transition in transitions:
        _status_transition_counter.labels(
            from_status=transition.previous_status.value if transition.previous_status else "none",
            to_status=transition.status.value,
        ).inc()
