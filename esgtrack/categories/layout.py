"""Declarative import layouts.

A spreadsheet export for one ESG area is a sequence of sections: a yearly
table at the top, then headed blocks such as "Water Sources:" followed by
bullet lines, or "Director Fees (2025)" followed by its own column header
row. Each section type below describes how its rows become metrics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union


@dataclass(frozen=True)
class Column:
    """Maps one table column to a yearly_series metric."""

    header: str
    category: str
    metric_name: str | None = None  # defaults to the header text
    subcategory: str | None = None
    unit: str | None = None  # defaults to the parenthesised part of the header

    @property
    def name(self) -> str:
        return self.metric_name or self.header


@dataclass(frozen=True)
class YearTable:
    """Rows are years, mapped columns are metrics."""

    columns: tuple[Column, ...]
    heading: str | None = None  # None: table starts at the top of the file
    year_column: str = "Year"

    @property
    def has_header_row(self) -> bool:
        return True


@dataclass(frozen=True)
class WideYearTable:
    """Rows are metrics, year-named columns are their values."""

    heading: str
    category: str
    label_column: str = "Metric"
    subcategory: str | None = None

    @property
    def has_header_row(self) -> bool:
        return True


@dataclass(frozen=True)
class KeyValueTable:
    """Rows are single_value metrics (label, value)."""

    heading: str
    category: str
    label_column: str = "Metric"
    value_column: str = "Status/Value"
    subcategory: str | None = None

    @property
    def has_header_row(self) -> bool:
        return True


@dataclass(frozen=True)
class Promotion:
    """Lift a bullet starting with ``prefix`` into its own single_value metric."""

    prefix: str
    metric_name: str
    category: str
    subcategory: str | None = None


@dataclass(frozen=True)
class BulletList:
    """Lines under a heading become the items of one list metric."""

    heading: str
    category: str
    metric_name: str
    subcategory: str | None = None
    promotions: tuple[Promotion, ...] = ()

    @property
    def has_header_row(self) -> bool:
        return False


@dataclass(frozen=True)
class RowList:
    """Rows become list items; ``fields`` maps column headers to item fields."""

    heading: str
    category: str
    metric_name: str
    fields: tuple[tuple[str, str], ...]
    subcategory: str | None = None

    @property
    def has_header_row(self) -> bool:
        return True


@dataclass(frozen=True)
class SummaryRows:
    """Key metric / latest value / trend rows become summary metrics."""

    heading: str
    category: str = "summary"
    key_column: str = "Key Metric"
    value_column: str = "Latest Value"
    trend_column: str = "Trend/Notes"

    @property
    def has_header_row(self) -> bool:
        return True


Section = Union[YearTable, WideYearTable, KeyValueTable, BulletList, RowList, SummaryRows]

Aggregate = Literal["sum", "avg", "count", "latest"]


@dataclass(frozen=True)
class SummaryRule:
    """One entry of a record's summary_stats.

    sum/avg/latest read numeric yearly values of matching metrics; count
    counts list items.
    """

    name: str
    aggregate: Aggregate
    category: str
    subcategory: str | None = None


@dataclass(frozen=True)
class CategoryDefinition:
    """Everything that differs between ESG record types."""

    key: str
    slug: str
    label: str
    categories: tuple[str, ...]
    layout: tuple[Section, ...] = ()
    summary_rules: tuple[SummaryRule, ...] = field(default=())

    def allows(self, category: str) -> bool:
        return category in self.categories
