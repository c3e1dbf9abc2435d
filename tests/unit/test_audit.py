"""Tests for esgtrack.records.audit - actor stamping."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from esgtrack.models import MetricIn, SummaryPayload, YearlySeriesPayload, YearlyValue
from esgtrack.records.audit import stamp_actor

NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_stamps_metric_and_nested_values():
    metric = MetricIn(
        category="irrigation_water",
        metric_name="Total",
        yearly_data=[
            {"year": "2023", "value": "1", "source": "csv"},
            {"year": "2024", "value": "2", "source": "csv", "added_by": "importer"},
        ],
    )

    stamp_actor(metric, "user-1", NOW)

    assert metric.created_by == "user-1"
    assert metric.yearly_data[0].added_by == "user-1"
    assert metric.yearly_data[0].added_at == NOW
    # Existing values are kept
    assert metric.yearly_data[1].added_by == "importer"


def test_existing_creator_is_kept():
    metric = MetricIn(category="risk", metric_name="Drought", created_by="analyst")

    stamp_actor(metric, "user-1", NOW)

    assert metric.created_by == "analyst"


def test_stamps_lists_of_metrics():
    metrics = [
        MetricIn(category="risk", metric_name="A", data_type="list", list_data=[{"item": "x"}]),
        MetricIn(
            category="risk",
            metric_name="B",
            data_type="single_value",
            single_value={"value": "high"},
        ),
    ]

    stamp_actor(metrics, "user-2", NOW)

    assert metrics[0].list_data[0].added_by == "user-2"
    assert metrics[1].single_value.added_by == "user-2"


def test_stamps_payload_objects():
    payload = YearlySeriesPayload(yearly_data=[YearlyValue(year="2024", source="csv")])

    stamp_actor(payload, "user-3")

    assert payload.yearly_data[0].added_by == "user-3"
    assert payload.yearly_data[0].added_at is not None


def test_summary_payload_is_left_alone():
    payload = SummaryPayload(summary_value={"key_metric": "Cane", "latest_value": "1"})
    before = payload.model_dump()

    stamp_actor(payload, "user-1", NOW)

    assert payload.model_dump() == before


def test_unknown_type_is_rejected():
    with pytest.raises(TypeError):
        stamp_actor({"metric_name": "x"}, "user-1", NOW)
