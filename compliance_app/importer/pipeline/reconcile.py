"""
Reconciliation of stored entities that a replace-mode upload no longer lists.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app, has_app_context
from sqlalchemy.orm import Session

from .report import BatchReport, SyncAction
from .strategies.base import ImportStrategy


class SyncReconciler:
    """
    Deactivate (soft) or delete (hard) active entities whose natural key was
    not processed by the batch. In dry-run mode the actions are reported but
    nothing is changed.
    """

    def __init__(self, session: Session, *, dry_run: bool = False) -> None:
        self.session = session
        self.dry_run = dry_run

    def missing(self, strategy: ImportStrategy, processed_keys: Iterable[str]) -> list:
        processed = set(processed_keys)
        return [
            entity for entity in strategy.active_entities(self.session) if strategy.entity_key(entity) not in processed
        ]

    def reconcile(
        self,
        strategy: ImportStrategy,
        processed_keys: Iterable[str],
        *,
        soft_delete: bool = True,
        report: BatchReport,
    ) -> list[SyncAction]:
        if not strategy.reconcilable:
            raise ValueError(f"Subject '{strategy.subject}' does not support reconciliation.")

        processed = set(processed_keys)
        if not processed:
            report.add_warning("Reconciliation skipped: no rows were processed, stored data left untouched")
            return []

        actions: list[SyncAction] = []
        for entity in self.missing(strategy, processed):
            action = SyncAction(
                entity_kind=strategy.entity_kind,
                natural_key=strategy.entity_key(entity),
                action="deactivated" if soft_delete else "deleted",
                name=getattr(entity, "name", None),
            )
            if not self.dry_run:
                if soft_delete:
                    strategy.deactivate(entity)
                else:
                    strategy.delete(self.session, entity)
            report.add_sync_action(action)
            actions.append(action)
            self._log(action, report)

        if actions and not self.dry_run:
            self.session.flush()
        return actions

    def _log(self, action: SyncAction, report: BatchReport) -> None:
        if has_app_context():
            current_app.logger.info(
                "Entity %s during reconciliation",
                action.action,
                extra={
                    "import_batch_id": report.batch_id,
                    "import_entity_kind": action.entity_kind,
                    "import_natural_key": action.natural_key,
                    "import_dry_run": self.dry_run,
                },
            )
