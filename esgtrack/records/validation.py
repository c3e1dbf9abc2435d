"""Completeness scoring for a record's metrics.

A heuristic, not a schema validator: every record starts at 100 and loses
points per incomplete metric.
"""

from __future__ import annotations

from collections.abc import Iterable

from esgtrack.models import (
    ListPayload,
    Metric,
    Severity,
    SingleValuePayload,
    ValidationIssue,
    ValidationReport,
    ValidationStatus,
    YearlySeriesPayload,
)

STARTING_SCORE = 100
MISSING_NAME_PENALTY = 5
EMPTY_SERIES_PENALTY = 3
MISSING_SINGLE_VALUE_PENALTY = 5
EMPTY_LIST_PENALTY = 2


def score_metrics(metrics: Iterable[Metric]) -> ValidationReport:
    """Check each active metric and compute the data quality score.

    Rules:
    - missing metric name: error, -5
    - yearly series without entries: warning, -3
    - single value without a value: error, -5, fails the record
    - list without items: warning, -2

    Args:
        metrics: Metrics of the active record (soft-deleted ones are skipped)

    Returns:
        ValidationReport with status, score (never below 0) and issues
    """
    issues: list[ValidationIssue] = []
    score = STARTING_SCORE
    critical = False

    for metric in metrics:
        if not metric.is_active:
            continue

        if not metric.metric_name:
            issues.append(
                ValidationIssue(
                    metric_name="Unknown",
                    field="metric_name",
                    severity=Severity.ERROR,
                    error_message="Missing metric name",
                )
            )
            score -= MISSING_NAME_PENALTY

        payload = metric.payload
        if isinstance(payload, YearlySeriesPayload) and not payload.yearly_data:
            issues.append(
                ValidationIssue(
                    metric_name=metric.metric_name,
                    field="yearly_data",
                    severity=Severity.WARNING,
                    error_message="Yearly series data is empty",
                )
            )
            score -= EMPTY_SERIES_PENALTY
        elif isinstance(payload, SingleValuePayload) and (
            payload.single_value is None or payload.single_value.is_empty
        ):
            issues.append(
                ValidationIssue(
                    metric_name=metric.metric_name,
                    field="single_value",
                    severity=Severity.ERROR,
                    error_message="Single value is missing",
                )
            )
            score -= MISSING_SINGLE_VALUE_PENALTY
            critical = True
        elif isinstance(payload, ListPayload) and not payload.list_data:
            issues.append(
                ValidationIssue(
                    metric_name=metric.metric_name,
                    field="list_data",
                    severity=Severity.WARNING,
                    error_message="List data is empty",
                )
            )
            score -= EMPTY_LIST_PENALTY

    return ValidationReport(
        validation_status=(
            ValidationStatus.FAILED_VALIDATION if critical else ValidationStatus.VALIDATED
        ),
        data_quality_score=max(0, score),
        error_count=len(issues),
        errors=issues,
        has_critical_errors=critical,
    )
