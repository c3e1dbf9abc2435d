"""Summary statistics computed from a record's active metrics."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from esgtrack.categories.layout import CategoryDefinition, SummaryRule
from esgtrack.models import ListPayload, Metric, YearlySeriesPayload


def compute_summary_stats(
    definition: CategoryDefinition, metrics: Iterable[Metric], now: datetime
) -> dict[str, Any]:
    """Evaluate ``definition.summary_rules`` over active metrics.

    Sums and averages with nothing to aggregate report 0, ``latest`` reports
    None.
    """
    active = [metric for metric in metrics if metric.is_active]
    stats: dict[str, Any] = {
        rule.name: _evaluate(rule, active) for rule in definition.summary_rules
    }
    stats["last_updated"] = now.isoformat()
    return stats


def _matching(rule: SummaryRule, metrics: list[Metric]) -> list[Metric]:
    return [
        metric
        for metric in metrics
        if metric.category == rule.category
        and (rule.subcategory is None or metric.subcategory == rule.subcategory)
    ]


def _evaluate(rule: SummaryRule, metrics: list[Metric]) -> float | int | None:
    matching = _matching(rule, metrics)

    if rule.aggregate == "count":
        return sum(
            len(metric.payload.list_data)
            for metric in matching
            if isinstance(metric.payload, ListPayload)
        )

    yearly = [
        value
        for metric in matching
        if isinstance(metric.payload, YearlySeriesPayload)
        for value in metric.payload.yearly_data
        if value.numeric_value is not None
    ]

    if rule.aggregate == "latest":
        if not yearly:
            return None
        latest = max(yearly, key=lambda value: (value.fiscal_year or 0, value.year))
        return latest.numeric_value

    numbers = [value.numeric_value for value in yearly]
    if not numbers:
        return 0
    total = sum(numbers)
    return total if rule.aggregate == "sum" else total / len(numbers)
