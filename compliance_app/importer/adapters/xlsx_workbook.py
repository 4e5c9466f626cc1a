"""
XLSX adapter: read every worksheet of a workbook as header-keyed rows.

The first row of a sheet is its header. Columns with a blank header are
dropped, repeated headers get a numeric suffix, and trailing blank rows are
ignored. Cell values are returned as openpyxl yields them (dates as
``datetime``, numbers as ``int``/``float``) so the date parser can handle
them without string round-trips.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import InputFileError


@dataclass(frozen=True)
class SheetData:
    name: str
    headers: tuple[str, ...]
    rows: list[dict[str, Any]] = field(default_factory=list)


def _header_cell(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _unique_headers(cells: tuple[Any, ...]) -> list[tuple[int, str]]:
    columns: list[tuple[int, str]] = []
    used: set[str] = set()
    for index, cell in enumerate(cells):
        header = _header_cell(cell)
        if not header:
            continue
        key = header
        counter = 1
        while key in used:
            counter += 1
            key = f"{header}_{counter}"
        used.add(key)
        columns.append((index, key))
    return columns


def _sheet_data(worksheet: Any) -> SheetData:
    iterator = worksheet.iter_rows(values_only=True)
    header_cells = next(iterator, None)
    if header_cells is None:
        return SheetData(name=worksheet.title, headers=())

    columns = _unique_headers(tuple(header_cells))
    rows: list[dict[str, Any]] = []
    for cells in iterator:
        rows.append({key: (cells[index] if index < len(cells) else None) for index, key in columns})
    # Only trailing blank rows are dropped; row numbers must match the sheet.
    while rows and all(_is_blank(value) for value in rows[-1].values()):
        rows.pop()
    return SheetData(name=worksheet.title, headers=tuple(key for _, key in columns), rows=rows)


def read_workbook(source: str | Path | IO[bytes]) -> list[SheetData]:
    """Read all worksheets in workbook order."""

    try:
        workbook = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, OSError, KeyError, ValueError) as exc:
        raise InputFileError(f"Could not read workbook {source}: {exc}") from exc
    try:
        return [_sheet_data(worksheet) for worksheet in workbook.worksheets]
    finally:
        workbook.close()


def read_sheet_rows(source: str | Path | IO[bytes], sheet: str | int | None = None) -> SheetData:
    """Read a single sheet by name or 0-based index; defaults to the first sheet."""

    sheets = read_workbook(source)
    if not sheets:
        raise InputFileError(f"Workbook {source} contains no worksheets.")
    if sheet is None:
        return sheets[0]
    if isinstance(sheet, int):
        try:
            return sheets[sheet]
        except IndexError as exc:
            raise InputFileError(f"Workbook {source} has no sheet at index {sheet}.") from exc
    for data in sheets:
        if data.name == sheet:
            return data
    raise InputFileError(f"Workbook {source} has no sheet named '{sheet}'.")
