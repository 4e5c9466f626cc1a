"""
Small helpers shared by the importer: batch identifiers, file extensions and
JSON-safe snapshots of row data.
"""

from __future__ import annotations

import enum
import secrets
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

TABULAR_EXTENSIONS: tuple[str, ...] = ("csv", "xlsx", "xlsm")
WORKBOOK_EXTENSIONS: tuple[str, ...] = ("xlsx", "xlsm")

_SCALARS = (str, int, float, bool, type(None))


def generate_batch_id(now: datetime | None = None) -> str:
    """Return ``YYYYmmddHHMMSS_<8 hex>``, sortable by creation time."""

    moment = now or datetime.now(timezone.utc)
    return f"{moment:%Y%m%d%H%M%S}_{secrets.token_hex(4)}"


def file_extension(path: str | Path) -> str:
    return Path(str(path)).suffix.lstrip(".").lower()


def ensure_json_serializable(value: Any) -> Any:
    """
    Convert cell values, enums and nested containers into something
    ``json.dumps`` accepts. Unknown objects fall back to ``str()``.
    """

    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return ensure_json_serializable(value.value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Mapping):
        return {str(key): ensure_json_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [ensure_json_serializable(item) for item in value]
    return str(value)


def diff_payload(
    stored: Mapping[str, Any] | None,
    incoming: Mapping[str, Any] | None,
) -> dict[str, dict[str, Any]]:
    """
    Field-level ``{"before", "after"}`` diff, keys sorted.

    An incoming ``None`` means "cell left blank" and never clears a stored
    value, so such fields are not reported.
    """

    stored = stored or {}
    changes: dict[str, dict[str, Any]] = {}
    for key, after in sorted((incoming or {}).items()):
        if after is None or stored.get(key) == after:
            continue
        changes[key] = {
            "before": ensure_json_serializable(stored.get(key)),
            "after": ensure_json_serializable(after),
        }
    return changes
