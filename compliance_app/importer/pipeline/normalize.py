"""
Row normalization: map raw spreadsheet headers onto a contract's canonical
field names and trim textual cell values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from ..contracts import ImportContract, normalize_header
from .values import is_blank


@dataclass
class NormalizedRow:
    """Canonical payload of one input row plus the untouched input."""

    values: dict[str, Any]
    raw: dict[str, Any]
    ignored_headers: tuple[str, ...] = field(default_factory=tuple)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


class RowNormalizer:
    """Translate raw rows into canonical rows for one import contract."""

    def __init__(self, contract: ImportContract, *, required: Sequence[str] | None = None) -> None:
        self.contract = contract
        self.required = tuple(required) if required is not None else contract.required_fields
        self._alias_map = contract.alias_map
        self._specs = {spec.name: spec for spec in contract.fields}

    def canonical_header(self, header: object | None) -> str | None:
        return self._alias_map.get(normalize_header(header))

    def unmapped_headers(self, headers: Iterable[object]) -> tuple[str, ...]:
        return tuple(str(header) for header in headers if header is not None and self.canonical_header(header) is None)

    def normalize(self, raw_row: Mapping[object, Any]) -> NormalizedRow:
        values: dict[str, Any] = {}
        ignored: list[str] = []
        for header, value in raw_row.items():
            canonical = self.canonical_header(header)
            if canonical is None:
                if header is not None:
                    ignored.append(str(header))
                continue
            spec = self._specs[canonical]
            cleaned = spec.normalizer(value) if spec.normalizer is not None else value
            # Two columns can map to one field; the first non-blank value wins.
            if canonical in values and not is_blank(values[canonical]):
                continue
            values[canonical] = cleaned
        raw = {str(key): value for key, value in raw_row.items() if key is not None}
        return NormalizedRow(values=values, raw=raw, ignored_headers=tuple(ignored))

    def is_empty_row(self, row: NormalizedRow | Mapping[str, Any]) -> bool:
        """True when every required field is blank."""

        values = row.values if isinstance(row, NormalizedRow) else row
        fields = self.required or tuple(values)
        return all(is_blank(values.get(name)) for name in fields)

    def missing_required(self, row: NormalizedRow) -> tuple[str, ...]:
        return tuple(name for name in self.required if is_blank(row.values.get(name)))
