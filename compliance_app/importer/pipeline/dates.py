"""
Date parsing for spreadsheet cells.

Cells arrive as spreadsheet serial numbers, native ``datetime`` objects (from
openpyxl) or free text in a handful of regional layouts. Parsing never raises:
unusable input yields ``None`` and a ``DateParseError`` is handed to the
warning callback.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Sequence

from dateutil import parser as dateutil_parser
from flask import current_app, has_app_context

from ..errors import DateParseError

# 1900 date system; the 1899-12-30 epoch absorbs the phantom 1900-02-29.
SPREADSHEET_EPOCH = date(1899, 12, 30)
MAX_SPREADSHEET_SERIAL = 2958465  # 9999-12-31

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y.%m.%d",
    "%Y-%m-%d %H:%M:%S",
    "%d %B %Y",
    "%d %b %Y",
)

_NUMERIC = re.compile(r"^\d+(\.\d+)?$")

WarningSink = Callable[[DateParseError], None]


def serial_to_date(serial: float) -> date | None:
    """Convert a spreadsheet serial day number to a calendar date."""

    days = int(serial)
    if days < 1 or days > MAX_SPREADSHEET_SERIAL:
        return None
    return SPREADSHEET_EPOCH + timedelta(days=days)


class DateParser:
    """Parse heterogeneous date cells into ``datetime.date`` values."""

    def __init__(self, *, formats: Sequence[str] = DATE_FORMATS, on_warning: WarningSink | None = None) -> None:
        self.formats = tuple(formats)
        self.on_warning = on_warning

    def parse(self, value: object | None, *, field: str | None = None) -> date | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, bool):
            return self._reject(value, field)

        if isinstance(value, (int, float, Decimal)):
            parsed = serial_to_date(float(value))
            return parsed if parsed is not None else self._reject(value, field)

        text = str(value).strip()
        if not text:
            return None

        if _NUMERIC.match(text):
            parsed = serial_to_date(float(text))
            if parsed is not None:
                return parsed

        for fmt in self.formats:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue

        try:
            return dateutil_parser.parse(text, dayfirst=True).date()
        except (ValueError, OverflowError):
            return self._reject(value, field)

    def _reject(self, value: object, field: str | None) -> None:
        warning = DateParseError(value, field=field)
        if has_app_context():
            current_app.logger.debug("Unparseable date value", extra={"date_field": field, "date_value": str(value)})
        if self.on_warning is not None:
            self.on_warning(warning)
        return None
