"""Integration tests for validation, verification and metric queries."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from esgtrack.errors import NotFoundError, ValidationError
from esgtrack.models import DataType, ValidationStatus, VerificationStatus
from esgtrack.records import VersionedRecordService

DOCUMENT = {
    "metrics": [
        {
            "category": "irrigation_water",
            "metric_name": "Total",
            "yearly_data": [
                {"year": "2023", "value": "185", "source": "report"},
                {"year": "2024", "value": "190", "source": "report"},
            ],
        },
        {
            "category": "risk",
            "metric_name": "Auditor",
            "data_type": "single_value",
            "single_value": {"value": ""},
        },
        {
            "category": "water_sources",
            "metric_name": "Water Sources",
            "data_type": "list",
            "list_data": [{"item": "River"}],
        },
    ]
}


@pytest.fixture
def service(db_session: AsyncSession, irrigation) -> VersionedRecordService:
    return VersionedRecordService(db_session, irrigation)


@pytest.mark.asyncio
async def test_validate_flags_empty_single_value(service):
    await service.create_record("company-a", DOCUMENT, "user-1")

    report = await service.validate_data("company-a")

    assert report.validation_status is ValidationStatus.FAILED_VALIDATION
    assert report.data_quality_score <= 95
    assert report.has_critical_errors is True

    record = await service.get_active_record("company-a")
    assert record.validation_status == "failed_validation"
    assert record.data_quality_score == report.data_quality_score
    assert record.validation_errors[0]["field"] == "single_value"
    assert record.validation_notes.startswith("Auto-validated on ")


@pytest.mark.asyncio
async def test_validate_without_active_record(service):
    with pytest.raises(NotFoundError) as exc_info:
        await service.validate_data("company-a")

    assert exc_info.value.code == "RECORD_NOT_FOUND"


@pytest.mark.asyncio
async def test_update_verification_status(service):
    await service.create_record("company-a", DOCUMENT, "user-1")

    record = await service.update_verification_status(
        "company-a", "verified", "auditor-1", "Checked against annual report"
    )

    assert record.verification_status == VerificationStatus.VERIFIED.value
    assert record.verified_by == "auditor-1"
    assert record.verified_at is not None
    assert record.verification_notes == "Checked against annual report"


@pytest.mark.asyncio
async def test_update_verification_rejects_unknown_status(service):
    await service.create_record("company-a", DOCUMENT, "user-1")

    with pytest.raises(ValidationError) as exc_info:
        await service.update_verification_status("company-a", "approved", "auditor-1")

    assert exc_info.value.code == "INVALID_STATUS"


@pytest.mark.asyncio
async def test_metric_queries(service):
    await service.create_record("company-a", DOCUMENT, "user-1")

    by_category = await service.get_metrics_by_category("company-a", "water_sources")
    assert [m.metric_name for m in by_category] == ["Water Sources"]

    by_type = await service.get_metrics_by_data_type("company-a", "single_value")
    assert [m.data_type for m in by_type] == [DataType.SINGLE_VALUE]

    with pytest.raises(ValidationError):
        await service.get_metrics_by_data_type("company-a", "matrix")

    series = await service.get_time_series("company-a", "Total")
    assert [(v.year, v.numeric_value) for v in series] == [("2023", 185.0), ("2024", 190.0)]
    assert await service.get_time_series("company-a", "Total", category="risk") == []
    assert await service.get_time_series("company-a", "Water Sources") == []
    assert await service.get_metrics_by_category("company-b", "risk") == []


@pytest.mark.asyncio
async def test_summary_stats(service):
    await service.create_record("company-a", DOCUMENT, "user-1")

    summary = await service.get_summary_stats("company-a")

    assert summary["summary_stats"]["total_irrigation_water"] == 375.0
    assert summary["summary_stats"]["water_sources_count"] == 1
    assert (summary["data_period_start"], summary["data_period_end"]) == ("2023", "2024")
    assert summary["last_updated"] is not None
