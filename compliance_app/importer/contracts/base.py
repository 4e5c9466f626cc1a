"""Shared building blocks for the ingest contracts.

A contract is plain data: a tuple of ``FieldSpec`` entries whose aliases cover
the column spellings seen in real uploads (English and Indonesian variants).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Mapping, Tuple

Normalizer = Callable[[object | None], object | None]

_SEPARATORS = re.compile(r"[\s\-._]+")
_NON_TOKEN = re.compile(r"[^a-z0-9_]")


def _strip_string(value: object | None) -> object | None:
    if isinstance(value, str):
        return value.strip()
    return value


def normalize_header(header: object | None) -> str:
    """Normalize a column header for comparison (case/space/separator agnostic)."""

    if header is None:
        return ""
    token = str(header).lstrip("\ufeff").strip().lower()
    token = _SEPARATORS.sub("_", token)
    token = _NON_TOKEN.sub("", token)
    return token.strip("_")


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical ingest field."""

    name: str
    description: str
    required: bool = False
    aliases: Tuple[str, ...] = ()
    normalizer: Normalizer | None = _strip_string

    def headers(self) -> Tuple[str, ...]:
        """Return the canonical header plus aliases for validation."""

        return (self.name, *self.aliases)


@dataclass(frozen=True)
class ImportContract:
    """Canonical field set for one import subject."""

    subject: str
    entity_kind: str
    fields: Tuple[FieldSpec, ...]

    @cached_property
    def alias_map(self) -> Mapping[str, str]:
        """Map normalized header tokens to canonical names (includes aliases)."""

        mapping: dict[str, str] = {}
        for field in self.fields:
            for header in field.headers():
                mapping.setdefault(normalize_header(header), field.name)
        return mapping

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return tuple(field.name for field in self.fields if field.required)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(field.name for field in self.fields)

    def field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None
