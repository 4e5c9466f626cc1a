"""CSV adapter: header-keyed rows for any import subject.

Header mapping is left to the row normalizer, so the adapter only strips a
byte-order mark and surrounding whitespace from the header cells.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from ..errors import InputFileError


@dataclass(frozen=True)
class CSVData:
    headers: tuple[str, ...]
    rows: list[dict[str, str | None]] = field(default_factory=list)


def _sanitize_header(header: str | None) -> str:
    token = (header or "").strip()
    return token.lstrip("\ufeff").strip()


def _row_is_blank(row: dict[str, str | None]) -> bool:
    return all((value is None or value.strip() == "") for value in row.values())


def read_csv_stream(file_obj: IO[str]) -> CSVData:
    reader = csv.DictReader(file_obj)
    if reader.fieldnames is None:
        raise InputFileError("CSV file is empty; a header row is required.")
    reader.fieldnames = [_sanitize_header(header) for header in reader.fieldnames]

    rows: list[dict[str, str | None]] = []
    for raw_row in reader:
        # Extra cells beyond the header are collected under the ``None`` key.
        rows.append({key: value for key, value in raw_row.items() if key})
    while rows and _row_is_blank(rows[-1]):
        rows.pop()
    return CSVData(headers=tuple(reader.fieldnames), rows=rows)


def read_csv_rows(source: str | Path | IO[str]) -> CSVData:
    """Read a CSV file (UTF-8, optional BOM) from a path or open text stream."""

    if not isinstance(source, (str, Path)):
        return read_csv_stream(source)
    path = Path(source)
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return read_csv_stream(handle)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise InputFileError(f"Could not read CSV file {path}: {exc}") from exc
