"""File ingestion: parse uploads and map rows onto a record type's metrics."""

from esgtrack.core.parsing import extract_unit, parse_number
from esgtrack.ingestion.parsers import ParsedFile, import_source_for, parse_file
from esgtrack.ingestion.transform import data_period, new_batch_id, transform_rows

__all__ = [
    "ParsedFile",
    "data_period",
    "extract_unit",
    "import_source_for",
    "new_batch_id",
    "parse_file",
    "parse_number",
    "transform_rows",
]
