"""CSV export of a record's metrics.

Provides streaming CSV generation: one row per yearly value, one row per
single value (year "N/A").
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator
from datetime import date
from io import StringIO

from esgtrack.models import Metric, SingleValuePayload, YearlySeriesPayload

CSV_HEADERS = [
    "Category",
    "Metric Name",
    "Year",
    "Value",
    "Unit",
    "Source",
    "Verification Status",
]


def export_filename(record_type: str, company_id: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"{record_type}-{company_id}-{today.isoformat()}.csv"


def export_metrics_csv(
    metrics: Iterable[Metric],
    verification_status: str,
    category: str | None = None,
) -> Iterator[str]:
    """Generate CSV stream for the active metrics of a record.

    Args:
        metrics: Metrics of the record
        verification_status: Record status repeated on every row
        category: Only export metrics of this category

    Yields:
        CSV rows as strings (every cell quoted)
    """
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)

    def flush() -> str:
        value = output.getvalue()
        output.seek(0)
        output.truncate(0)
        return value

    writer.writerow(CSV_HEADERS)
    yield flush()

    for metric in metrics:
        if not metric.is_active or (category and metric.category != category):
            continue

        payload = metric.payload
        if isinstance(payload, YearlySeriesPayload):
            for entry in payload.yearly_data:
                writer.writerow([
                    metric.category,
                    metric.metric_name,
                    entry.year,
                    "" if entry.value is None else entry.value,
                    entry.unit or "",
                    entry.source or "",
                    verification_status,
                ])
                yield flush()
        elif isinstance(payload, SingleValuePayload) and payload.single_value is not None:
            single = payload.single_value
            writer.writerow([
                metric.category,
                metric.metric_name,
                "N/A",
                "" if single.value is None else single.value,
                single.unit or "",
                single.source or "",
                verification_status,
            ])
            yield flush()
