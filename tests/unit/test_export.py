"""Tests for esgtrack.records.export - CSV export."""

from __future__ import annotations

import csv
import io
from datetime import date
from uuid import uuid4

from esgtrack.models import Metric
from esgtrack.records.export import CSV_HEADERS, export_filename, export_metrics_csv


def _metrics():
    return [
        Metric(
            id=uuid4(),
            category="irrigation_water",
            metric_name="Total",
            payload={
                "data_type": "yearly_series",
                "yearly_data": [
                    {"year": "2023", "value": "185", "unit": "million ML", "source": "report"},
                    {"year": "2024", "value": "190", "unit": "million ML", "source": "report"},
                ],
            },
        ),
        Metric(
            id=uuid4(),
            category="risk",
            metric_name="Drought risk",
            payload={"data_type": "single_value", "single_value": {"value": "High", "source": "board"}},
        ),
        Metric(
            id=uuid4(),
            category="water_sources",
            metric_name="Water Sources",
            payload={"data_type": "list", "list_data": [{"item": "River"}]},
        ),
        Metric(
            id=uuid4(),
            category="risk",
            metric_name="Removed",
            payload={"data_type": "single_value", "single_value": {"value": "x"}},
            is_active=False,
        ),
    ]


def _rows(lines):
    return list(csv.reader(io.StringIO("".join(lines))))


def test_export_rows_per_value():
    rows = _rows(export_metrics_csv(_metrics(), "verified"))

    assert rows[0] == CSV_HEADERS
    assert rows[1] == ["irrigation_water", "Total", "2023", "185", "million ML", "report", "verified"]
    assert rows[3] == ["risk", "Drought risk", "N/A", "High", "", "board", "verified"]
    # Lists and deleted metrics are not exported
    assert len(rows) == 4


def test_export_category_filter():
    rows = _rows(export_metrics_csv(_metrics(), "unverified", category="risk"))

    assert [row[1] for row in rows[1:]] == ["Drought risk"]


def test_export_quotes_every_cell():
    first = next(iter(export_metrics_csv([], "unverified")))
    assert first.startswith('"Category","Metric Name"')


def test_export_filename():
    assert export_filename("irrigation", "c1", date(2025, 1, 31)) == "irrigation-c1-2025-01-31.csv"
