"""
Input adapters that turn uploaded files into header-keyed rows.
"""

from .csv_rows import CSVData, read_csv_rows, read_csv_stream
from .xlsx_workbook import SheetData, read_sheet_rows, read_workbook

__all__ = [
    "CSVData",
    "SheetData",
    "read_csv_rows",
    "read_csv_stream",
    "read_sheet_rows",
    "read_workbook",
]
