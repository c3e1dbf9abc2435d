"""Turn parsed spreadsheet rows into metrics using a record type's layout."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable
from typing import Any
from uuid import uuid4

from esgtrack.categories.layout import (
    BulletList,
    CategoryDefinition,
    KeyValueTable,
    RowList,
    Section,
    SummaryRows,
    WideYearTable,
    YearTable,
)
from esgtrack.core.parsing import extract_unit, parse_number, years_in
from esgtrack.models import (
    DataType,
    ListItem,
    MetricIn,
    SingleValue,
    SummaryValue,
    YearlyValue,
)

logger = logging.getLogger(__name__)

_BULLET = re.compile(r"^[•\-*✓·]\s*")
_YEAR_CELL = re.compile(r"^\d{4}(?:\s*(?:→|->|–|-)\s*\d{4})?$")
_PLACEHOLDER = re.compile(r"^_\d+$")
_SPACES = re.compile(r"\s+")


def transform_rows(
    rows: list[dict[str, str]],
    definition: CategoryDefinition,
    *,
    source: str,
    columns: list[str] | None = None,
) -> list[MetricIn]:
    """Apply ``definition.layout`` to parsed rows.

    The first row of the file (``columns``) is read as a line too, since an
    exported sheet often starts with a section heading rather than a table
    header.

    Args:
        rows: Parsed rows keyed by the file's first row
        definition: Record type whose layout is applied
        source: Source label stamped on every value
        columns: First row of the file (defaults to the keys of ``rows[0]``)

    Returns:
        Metrics in the order they were first seen
    """
    if columns is None:
        columns = list(rows[0].keys()) if rows else []

    lines: list[list[str]] = [["" if _PLACEHOLDER.match(c) else c for c in columns]]
    lines.extend(list(row.values()) for row in rows)

    reader = _LayoutReader(definition.layout, source)
    for line in lines:
        reader.feed([str(cell).strip() for cell in line])

    metrics = reader.collector.build()
    logger.info(
        "Transformed %d rows into %d %s metrics", len(rows), len(metrics), definition.key
    )
    return metrics


def data_period(metrics: Iterable[MetricIn]) -> tuple[str | None, str | None]:
    """Earliest and latest year named in the metrics' yearly data."""
    years: set[int] = set()
    for metric in metrics:
        for value in metric.yearly_data or []:
            years.update(years_in(value.year))
    if not years:
        return None, None
    return str(min(years)), str(max(years))


def new_batch_id(prefix: str) -> str:
    """Traceable import batch id: ``{prefix}_import_{epoch_ms}_{random}``."""
    return f"{prefix}_import_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def _norm(text: str) -> str:
    text = text.replace("–", "-").replace("—", "-")
    return _SPACES.sub(" ", text).strip().rstrip(":").strip().lower()


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


class _MetricCollector:
    """Accumulates values per (category, metric_name) in first-seen order."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], dict[str, Any]] = {}

    def _entry(
        self, data_type: DataType, category: str, metric_name: str, subcategory: str | None
    ) -> dict[str, Any] | None:
        key = (category, metric_name)
        entry = self._entries.get(key)
        if entry is None:
            entry = {
                "category": category,
                "subcategory": subcategory,
                "metric_name": metric_name,
                "data_type": data_type,
                "values": [],
            }
            self._entries[key] = entry
        elif entry["data_type"] is not data_type:
            logger.warning(
                "Skipping %s value for %s/%s already collected as %s",
                data_type.value,
                category,
                metric_name,
                entry["data_type"].value,
            )
            return None
        return entry

    def add(
        self,
        data_type: DataType,
        category: str,
        metric_name: str,
        subcategory: str | None,
        value: Any,
    ) -> None:
        entry = self._entry(data_type, category, metric_name, subcategory)
        if entry is None:
            return
        if data_type in (DataType.YEARLY_SERIES, DataType.LIST):
            entry["values"].append(value)
        else:
            entry["values"] = [value]

    def build(self) -> list[MetricIn]:
        metrics = []
        for entry in self._entries.values():
            data_type = entry.pop("data_type")
            values = entry.pop("values")
            if data_type is DataType.YEARLY_SERIES:
                payload = {"yearly_data": values}
            elif data_type is DataType.LIST:
                payload = {"list_data": values}
            elif data_type is DataType.SINGLE_VALUE:
                payload = {"single_value": values[0]}
            else:
                payload = {"summary_value": values[0]}
            metrics.append(MetricIn(data_type=data_type, **entry, **payload))
        return metrics


class _LayoutReader:
    """Walks lines, switching section whenever a heading line is seen."""

    def __init__(self, sections: tuple[Section, ...], source: str) -> None:
        self.sections = sections
        self.source = source
        self.collector = _MetricCollector()
        self.current: Section | None = None
        self.header: list[str] | None = None

        # A table without heading starts on the first line of the file
        if sections and sections[0].heading is None:
            self.current = sections[0]

    def feed(self, cells: list[str]) -> None:
        if not any(cells):
            return

        section = self._section_for(cells[0])
        if section is not None:
            self.current = section
            self.header = None
            return

        if self.current is None:
            return
        if self.current.has_header_row and self.header is None:
            self.header = cells
            return

        if isinstance(self.current, YearTable):
            self._year_row(self.current, cells)
        elif isinstance(self.current, WideYearTable):
            self._wide_row(self.current, cells)
        elif isinstance(self.current, KeyValueTable):
            self._key_value_row(self.current, cells)
        elif isinstance(self.current, BulletList):
            self._bullet_row(self.current, cells)
        elif isinstance(self.current, RowList):
            self._list_row(self.current, cells)
        elif isinstance(self.current, SummaryRows):
            self._summary_row(self.current, cells)

    def _section_for(self, first_cell: str) -> Section | None:
        if not first_cell:
            return None
        text = _norm(first_cell)
        for section in self.sections:
            if section.heading and text.startswith(_norm(section.heading)):
                return section
        return None

    def _row(self, cells: list[str]) -> dict[str, str]:
        header = self.header or []
        return {
            _norm(name): cells[index] if index < len(cells) else ""
            for index, name in enumerate(header)
            if name
        }

    # ------------------------------------------------------------------
    # Section handlers
    # ------------------------------------------------------------------

    def _year_row(self, section: YearTable, cells: list[str]) -> None:
        row = self._row(cells)
        year = (row.get(_norm(section.year_column)) or cells[0]).strip()
        if not _YEAR_CELL.match(year):
            return

        for column in section.columns:
            raw = row.get(_norm(column.header), "")
            if not raw:
                continue
            self.collector.add(
                DataType.YEARLY_SERIES,
                column.category,
                column.name,
                column.subcategory,
                YearlyValue(
                    year=year,
                    value=raw,
                    numeric_value=parse_number(raw),
                    unit=column.unit or extract_unit(column.header),
                    source=self.source,
                ),
            )

    def _wide_row(self, section: WideYearTable, cells: list[str]) -> None:
        row = self._row(cells)
        label = row.get(_norm(section.label_column)) or cells[0]
        if not label:
            return

        header = self.header or []
        for index, name in enumerate(header):
            if not _YEAR_CELL.match(name) or index >= len(cells) or not cells[index]:
                continue
            raw = cells[index]
            self.collector.add(
                DataType.YEARLY_SERIES,
                section.category,
                label,
                section.subcategory or _slug(label),
                YearlyValue(
                    year=name,
                    value=raw,
                    numeric_value=parse_number(raw),
                    unit=extract_unit(label),
                    source=self.source,
                ),
            )

    def _key_value_row(self, section: KeyValueTable, cells: list[str]) -> None:
        row = self._row(cells)
        label = row.get(_norm(section.label_column)) or cells[0]
        if not label:
            return
        value = row.get(_norm(section.value_column)) or (cells[1] if len(cells) > 1 else "")
        self.collector.add(
            DataType.SINGLE_VALUE,
            section.category,
            label,
            section.subcategory or _slug(label),
            SingleValue(value=value or None, unit=extract_unit(label), source=self.source),
        )

    def _bullet_row(self, section: BulletList, cells: list[str]) -> None:
        text = _BULLET.sub("", ", ".join(cell for cell in cells if cell)).strip()
        if not text:
            return

        for promotion in section.promotions:
            if text.lower().startswith(promotion.prefix.lower()):
                self.collector.add(
                    DataType.SINGLE_VALUE,
                    promotion.category,
                    promotion.metric_name,
                    promotion.subcategory,
                    SingleValue(value=text[len(promotion.prefix):].strip(), source=self.source),
                )

        self.collector.add(
            DataType.LIST,
            section.category,
            section.metric_name,
            section.subcategory,
            ListItem(item=text, source=self.source),
        )

    def _list_row(self, section: RowList, cells: list[str]) -> None:
        row = self._row(cells)
        values = {name: row.get(_norm(column), "") for column, name in section.fields}
        if not values.get(section.fields[0][1]):
            return
        self.collector.add(
            DataType.LIST,
            section.category,
            section.metric_name,
            section.subcategory,
            ListItem(source=self.source, **{k: v for k, v in values.items() if v}),
        )

    def _summary_row(self, section: SummaryRows, cells: list[str]) -> None:
        row = self._row(cells)
        key = row.get(_norm(section.key_column)) or cells[0]
        if not key:
            return
        self.collector.add(
            DataType.SUMMARY,
            section.category,
            key,
            _slug(key),
            SummaryValue(
                key_metric=key,
                latest_value=row.get(_norm(section.value_column)) or None,
                trend=row.get(_norm(section.trend_column)) or None,
            ),
        )
