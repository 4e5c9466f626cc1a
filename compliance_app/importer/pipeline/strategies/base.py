"""
Strategy interface: the per-entity half of the import pipeline.

The coordinator owns the control flow (empty rows, required fields, in-batch
duplicates, transaction, outcome bookkeeping). A strategy supplies the parts
that differ per entity kind.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy.orm import Session

from ...contracts import ImportContract
from ...utils import diff_payload
from ..context import BatchContext
from ..normalize import NormalizedRow

Payload = dict[str, Any]
References = dict[str, Any]
Changes = dict[str, dict[str, Any]]


class ImportStrategy:
    """Base class for per-entity import behaviour."""

    contract: ImportContract
    reconcilable: bool = True

    @property
    def subject(self) -> str:
        return self.contract.subject

    @property
    def entity_kind(self) -> str:
        return self.contract.entity_kind

    # -- row handling ---------------------------------------------------------------

    def prepare(self, row: NormalizedRow, ctx: BatchContext) -> Payload:
        """Coerce canonical cell values into typed payload values."""

        raise NotImplementedError

    def natural_key(self, payload: Payload) -> str | None:
        raise NotImplementedError

    def resolve(self, payload: Payload, ctx: BatchContext) -> References:
        """
        Look up referenced entities without creating any. Raise
        ``ResolutionError`` for references that can never be created.
        """

        return {}

    def complete_references(self, payload: Payload, refs: References, ctx: BatchContext) -> None:
        """
        Create the references ``resolve`` left unresolved. Called only once the
        row will create or update, so a skipped row leaves storage untouched.
        """

    def referenced_keys(self, refs: References) -> Iterable[str]:
        """Keys of same-kind entities the row points at; replace sync keeps them."""

        return ()

    def find_existing(self, payload: Payload, refs: References, ctx: BatchContext) -> Any | None:
        raise NotImplementedError

    def current_values(self, entity: Any, refs: References) -> Payload:
        raise NotImplementedError

    def incoming_values(self, payload: Payload, refs: References, ctx: BatchContext, entity: Any) -> Payload:
        raise NotImplementedError

    def changes(self, entity: Any, payload: Payload, refs: References, ctx: BatchContext) -> Changes:
        """Field diff restricted to non-null incoming values that differ."""

        return diff_payload(
            self.current_values(entity, refs),
            self.incoming_values(payload, refs, ctx, entity),
        )

    def apply_changes(
        self,
        entity: Any,
        changes: Changes,
        payload: Payload,
        refs: References,
        ctx: BatchContext,
    ) -> None:
        raise NotImplementedError

    def create(self, payload: Payload, refs: References, ctx: BatchContext) -> Any:
        raise NotImplementedError

    def describe(self, entity: Any) -> str | None:
        return getattr(entity, "name", None)

    # -- reconciliation -------------------------------------------------------------

    def entity_key(self, entity: Any) -> str:
        raise NotImplementedError

    def active_entities(self, session: Session) -> Iterable[Any]:
        raise NotImplementedError

    def deactivate(self, entity: Any) -> None:
        raise NotImplementedError

    def delete(self, session: Session, entity: Any) -> None:
        session.delete(entity)

    # -- helpers --------------------------------------------------------------------

    @staticmethod
    def _persist(entity: Any, ctx: BatchContext) -> None:
        if not ctx.dry_run:
            ctx.session.add(entity)
            ctx.session.flush()

    @staticmethod
    def _assign(entity: Any, changes: Mapping[str, Any], values: Payload) -> None:
        for field_name in changes:
            setattr(entity, field_name, values[field_name])
