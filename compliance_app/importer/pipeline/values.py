"""
Cell value coercion helpers shared by the import strategies.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from email_validator import EmailNotValidError, validate_email

ACTIVE_TOKENS = frozenset({"true", "yes", "ya", "y", "1", "active", "aktif"})
INACTIVE_TOKENS = frozenset({"false", "no", "tidak", "n", "0", "inactive", "nonaktif", "non_aktif", "non aktif"})

_NUMERIC_JUNK = re.compile(r"[^\d.,\-]")
_CODE_JUNK = re.compile(r"[^A-Za-z0-9]")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def clean_text(value: Any) -> str | None:
    """Return a trimmed string or ``None`` for blank cells."""

    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def clean_identifier(value: Any) -> str | None:
    """
    Identifiers read from spreadsheets often come back as floats (``21608001.0``).
    """

    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float, Decimal)) and float(value).is_integer():
        return str(int(value))
    return clean_text(value)


def parse_bool(value: Any) -> bool | None:
    """Interpret active/inactive style tokens; ``None`` when unrecognised."""

    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    token = str(value).strip().lower()
    if not token:
        return None
    if token in ACTIVE_TOKENS:
        return True
    if token in INACTIVE_TOKENS:
        return False
    return None


def parse_number(value: Any) -> float | None:
    """
    Parse numbers written with either decimal separator.

    A lone comma is a decimal comma (``"7,5"``); when both separators appear
    the comma is a thousands separator (``"1,250.50"``).
    """

    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    cleaned = _NUMERIC_JUNK.sub("", str(value))
    if "," in cleaned and "." not in cleaned:
        cleaned = cleaned.replace(",", ".")
    elif "," in cleaned and "." in cleaned:
        cleaned = cleaned.replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_int(value: Any) -> int | None:
    number = parse_number(value)
    return int(number) if number is not None else None


def normalize_email(value: Any) -> str | None:
    """
    Return the normalized email or raise ``ValueError`` for invalid input.

    Deliverability (DNS) checks are skipped; uploads are validated offline.
    """

    text = clean_text(value)
    if text is None:
        return None
    try:
        result = validate_email(text, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError(f"Invalid email format: {text}") from exc
    return result.normalized


def code_prefix(name: Any, length: int) -> str:
    """Uppercase alphanumeric prefix of ``name`` used as a generated code base."""

    text = clean_text(name) or ""
    return _CODE_JUNK.sub("", text).upper()[:length]
