"""File parsers for ESG imports.

CSV and Excel files become row dictionaries keyed by the first row of the
file; JSON files are either rows or a ready-made metrics document. All cells
come back as text so the transformer sees the same values regardless of the
source format.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import PurePath
from typing import Any

import pandas as pd

from esgtrack.errors import ValidationError
from esgtrack.models import ImportSource

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls", ".json")


@dataclass
class ParsedFile:
    """Intermediate result of parsing an uploaded file."""

    file_name: str
    extension: str
    size: int
    raw_data: list[dict[str, str]] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    document: dict[str, Any] | None = None  # JSON file already holding "metrics"


def file_extension(file_name: str) -> str:
    return PurePath(file_name or "").suffix.lower()


def import_source_for(file_name: str) -> ImportSource:
    """csv files are csv imports, spreadsheets are excel, anything else manual."""
    ext = file_extension(file_name)
    if ext == ".csv":
        return ImportSource.CSV
    if ext in (".xlsx", ".xls"):
        return ImportSource.EXCEL
    return ImportSource.MANUAL


def parse_file(buffer: bytes, file_name: str) -> ParsedFile:
    """Parse an uploaded file by its extension.

    Args:
        buffer: Raw file bytes
        file_name: Original file name (extension selects the parser)

    Returns:
        ParsedFile with ``raw_data`` rows, or ``document`` for a metrics JSON

    Raises:
        ValidationError: UNSUPPORTED_FILE_TYPE, EMPTY_FILE or PARSE_ERROR
    """
    ext = file_extension(file_name)
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported file type '{ext or file_name}'. "
            f"Supported: {', '.join(SUPPORTED_EXTENSIONS)}",
            code="UNSUPPORTED_FILE_TYPE",
        )
    if not buffer:
        raise ValidationError(f"File '{file_name}' is empty", code="EMPTY_FILE")

    parsed = ParsedFile(file_name=file_name, extension=ext, size=len(buffer))
    try:
        if ext == ".json":
            _parse_json(buffer, parsed)
        else:
            grid = _read_csv(buffer) if ext == ".csv" else _read_excel(buffer)
            parsed.columns, parsed.raw_data = _grid_to_rows(grid)
    except ValidationError:
        raise
    except Exception as exc:
        logger.warning("Failed to parse %s: %s", file_name, exc)
        raise ValidationError(
            f"Could not parse '{file_name}'",
            code="PARSE_ERROR",
            details={"reason": str(exc)},
        ) from exc

    logger.info(
        "Parsed %s: %d rows%s",
        file_name,
        len(parsed.raw_data),
        " (metrics document)" if parsed.document is not None else "",
    )
    return parsed


def _read_csv(buffer: bytes) -> list[list[str]]:
    text = buffer.decode("utf-8-sig")
    # Section blocks are ragged; name as many columns as the widest row
    width = max((len(row) for row in csv.reader(io.StringIO(text))), default=1)
    df = pd.read_csv(
        io.StringIO(text),
        header=None,
        names=list(range(max(width, 1))),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    return [[_cell_text(v) for v in row] for row in df.itertuples(index=False)]


def _read_excel(buffer: bytes) -> list[list[str]]:
    df = pd.read_excel(io.BytesIO(buffer), sheet_name=0, header=None, dtype=object)
    return [[_cell_text(v) for v in row] for row in df.itertuples(index=False)]


def _cell_text(value: Any) -> str:
    """Render a cell as text; whole floats lose their ".0"."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()
    return str(value).strip()


def _grid_to_rows(grid: list[list[str]]) -> tuple[list[str], list[dict[str, str]]]:
    lines = [_trim(row) for row in grid]
    lines = [row for row in lines if row]
    if not lines:
        return [], []

    width = max(len(row) for row in lines)
    columns = _header_keys(lines[0], width)
    rows = [dict(zip(columns, row + [""] * (width - len(row)))) for row in lines[1:]]
    return columns, rows


def _trim(row: list[str]) -> list[str]:
    end = len(row)
    while end and not row[end - 1]:
        end -= 1
    return list(row[:end])


def _header_keys(header: list[str], width: int) -> list[str]:
    """Unique dictionary keys for the first row; blanks become "_<index>"."""
    keys: list[str] = []
    seen: set[str] = set()
    for index in range(width):
        name = header[index].strip() if index < len(header) else ""
        key = name or f"_{index}"
        if key in seen:
            key = f"{name}_{index}"
        seen.add(key)
        keys.append(key)
    return keys


def _parse_json(buffer: bytes, parsed: ParsedFile) -> None:
    data = json.loads(buffer.decode("utf-8-sig"))

    if isinstance(data, dict) and isinstance(data.get("metrics"), list):
        parsed.document = data
        return

    rows = data.get("raw_data") if isinstance(data, dict) else data
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise ValidationError(
            f"JSON file '{parsed.file_name}' has neither a metrics array nor rows",
            code="PARSE_ERROR",
        )

    parsed.raw_data = [{str(k): _cell_text(v) for k, v in row.items()} for row in rows]
    parsed.columns = list(parsed.raw_data[0].keys()) if parsed.raw_data else []
