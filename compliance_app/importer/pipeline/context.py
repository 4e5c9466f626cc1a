"""
Options and per-batch state shared by the coordinator and the strategies.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from sqlalchemy.orm import Session

from ..errors import DateParseError
from .dates import DateParser
from .report import BatchReport
from .resolver import EntityResolver
from .sequence import CertificateNumberSequence
from .status import StatusEngine

SYNC_MODES = ("replace", "merge", "update_only")


@dataclass(frozen=True)
class ImportOptions:
    """Caller-supplied switches for one import."""

    dry_run: bool = False
    update_existing: bool = False
    create_missing: bool = True
    sync_mode: str = "merge"
    soft_delete: bool = True
    generate_certificate_numbers: bool = True
    provider_code: str = "GLC"

    def __post_init__(self) -> None:
        if self.sync_mode not in SYNC_MODES:
            raise ValueError(f"sync_mode must be one of {', '.join(SYNC_MODES)} (got {self.sync_mode!r}).")

    @property
    def reconciles(self) -> bool:
        """Only a full replace upload reconciles entities missing from it."""

        return self.sync_mode == "replace"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **overrides: Any) -> "ImportOptions":
        values: dict[str, Any] = {
            "sync_mode": config.get("IMPORTER_DEFAULT_SYNC_MODE", "merge"),
            "soft_delete": bool(config.get("IMPORTER_SOFT_DELETE", True)),
            "generate_certificate_numbers": bool(config.get("IMPORTER_GENERATE_CERTIFICATE_NUMBERS", True)),
            "provider_code": str(config.get("IMPORTER_CERTIFICATE_PROVIDER_CODE", "GLC")).upper(),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


@dataclass
class BatchContext:
    """Everything a strategy needs while handling the rows of one batch."""

    session: Session
    options: ImportOptions
    report: BatchReport
    resolver: EntityResolver
    status_engine: StatusEngine
    default_warning_days: int = 30
    sequence: CertificateNumberSequence | None = None
    row_warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.date_parser = DateParser(on_warning=self._on_date_warning)

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    def _on_date_warning(self, error: DateParseError) -> None:
        self.warn(str(error))

    def warn(self, message: str) -> None:
        self.row_warnings.append(message)

    def start_row(self) -> None:
        self.row_warnings = []

    def take_warnings(self) -> tuple[str, ...]:
        warnings = tuple(self.row_warnings)
        self.row_warnings = []
        return warnings

    def parse_date(self, value: Any, field_name: str):
        return self.date_parser.parse(value, field=field_name)

    def count_entity(self, entity_kind: str, action: str) -> None:
        self.report.count_entity(entity_kind, action)
