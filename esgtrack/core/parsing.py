"""Lenient parsing helpers for spreadsheet cell text."""

from __future__ import annotations

import math
import re
from typing import Any

_MISSING = {"", "n/a", "na", "-", "--", "none", "null", "nan"}
_UNIT_PATTERN = re.compile(r"\(([^)]+)\)")
_YEAR_PATTERN = re.compile(r"\b((?:19|20)\d{2})\b")


def parse_number(value: Any) -> float | None:
    """Parse a cell into a float.

    Thousands separators, surrounding whitespace and a trailing percent sign
    are ignored. Missing markers and malformed text yield None.

    Examples:
        >>> parse_number("1,200")
        1200.0
        >>> parse_number("12.5%")
        12.5
        >>> parse_number("N/A") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number

    text = str(value).strip()
    if text.lower() in _MISSING:
        return None
    text = text.replace(",", "").replace(" ", "").rstrip("%")
    try:
        number = float(text)
    except ValueError:
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def extract_unit(header: str) -> str | None:
    """Return the last parenthesised part of a column header, e.g. "ML/ha"."""
    matches = _UNIT_PATTERN.findall(header or "")
    return matches[-1].strip() if matches else None


def first_year(text: Any) -> int | None:
    """First four-digit year found in text ("2022→2023" gives 2022)."""
    if text is None:
        return None
    match = _YEAR_PATTERN.search(str(text))
    return int(match.group(1)) if match else None


def years_in(text: Any) -> list[int]:
    """All four-digit years found in text."""
    return [int(year) for year in _YEAR_PATTERN.findall(str(text or ""))]
