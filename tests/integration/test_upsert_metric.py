"""Integration tests for metric upserts and soft deletes on the active version."""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from esgtrack.errors import NotFoundError, ValidationError
from esgtrack.records import VersionedRecordService

RISK_LIST = {
    "category": "risk",
    "metric_name": "Water Risks",
    "data_type": "list",
    "list_data": [{"item": "Drought"}],
}


def _series(name: str, *values: tuple[str, str]) -> dict:
    return {
        "category": "irrigation_water",
        "metric_name": name,
        "yearly_data": [{"year": y, "value": v, "source": "manual"} for y, v in values],
    }


@pytest.mark.asyncio
async def test_upsert_on_empty_company_creates_first_version(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    record = await service.upsert_metric("company-a", RISK_LIST, "user-1")
    await db_session.commit()

    assert record.version == 1
    assert record.is_active is True
    assert record.import_source == "manual"
    assert len(record.metrics) == 1
    metric = service.to_metrics(record)[0]
    assert metric.created_by == "user-1"
    assert metric.payload.list_data[0].added_by == "user-1"


@pytest.mark.asyncio
async def test_upsert_appends_new_metric_to_active_version(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    await service.upsert_metric("company-a", RISK_LIST, "user-1")

    record = await service.upsert_metric("company-a", _series("Total", ("2024", "185")), "user-1")

    assert record.version == 1
    assert [m.metric_name for m in record.metrics] == ["Water Risks", "Total"]
    assert record.summary_stats["total_irrigation_water"] == 185.0


@pytest.mark.asyncio
async def test_update_replaces_payload_and_preserves_creator(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    await service.upsert_metric("company-a", _series("Total", ("2023", "100"), ("2024", "110")), "user-1")

    record = await service.upsert_metric(
        "company-a", {**_series("Total", ("2025", "120")), "created_by": "someone-else"}, "user-2"
    )
    await db_session.commit()

    assert len(record.metrics) == 1
    metric = service.to_metrics(record)[0]
    assert metric.created_by == "user-1"
    assert metric.last_updated_by == "user-2"
    assert [v.year for v in metric.payload.yearly_data] == ["2025"]
    assert record.last_updated_by == "user-2"
    assert record.summary_stats["total_irrigation_water"] == 120.0


@pytest.mark.asyncio
async def test_update_without_payload_keeps_values(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    await service.upsert_metric("company-a", _series("Total", ("2024", "185")), "user-1")

    record = await service.upsert_metric(
        "company-a",
        {"category": "irrigation_water", "metric_name": "Total", "description": "All estates"},
        "user-2",
    )

    metric = service.to_metrics(record)[0]
    assert metric.description == "All estates"
    assert metric.payload.yearly_data[0].numeric_value == 185.0


@pytest.mark.asyncio
async def test_update_without_data_type_keeps_stored_type(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    await service.upsert_metric(
        "company-a",
        {
            "category": "risk",
            "metric_name": "Drought Level",
            "data_type": "single_value",
            "single_value": {"value": "High"},
        },
        "user-1",
    )
    await service.upsert_metric("company-a", RISK_LIST, "user-1")

    await service.upsert_metric(
        "company-a",
        {"category": "risk", "metric_name": "Drought Level", "single_value": {"value": "Low"}},
        "user-2",
    )
    record = await service.upsert_metric(
        "company-a",
        {"category": "risk", "metric_name": "Water Risks", "list_data": [{"item": "Flood"}]},
        "user-2",
    )
    await db_session.commit()

    level, risks = service.to_metrics(record)
    assert level.data_type.value == "single_value"
    assert level.payload.single_value.value == "Low"
    assert level.created_by == "user-1"
    assert risks.data_type.value == "list"
    assert [i.item for i in risks.payload.list_data] == ["Flood"]


@pytest.mark.asyncio
async def test_new_metric_without_data_type_must_be_a_series(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError):
        await service.upsert_metric(
            "company-a",
            {"category": "risk", "metric_name": "Drought Level", "single_value": {"value": "High"}},
            "user-1",
        )


@pytest.mark.asyncio
async def test_upsert_rejects_mismatched_payload(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError):
        await service.upsert_metric(
            "company-a",
            {**RISK_LIST, "single_value": {"value": "High"}},
            "user-1",
        )


@pytest.mark.asyncio
async def test_upsert_rejects_category_of_another_record_type(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError) as exc_info:
        await service.upsert_metric(
            "company-a", {"category": "board_composition", "metric_name": "Board"}, "user-1"
        )

    assert exc_info.value.code == "INVALID_CATEGORY"


@pytest.mark.asyncio
async def test_delete_is_soft_and_idempotent(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    record = await service.upsert_metric("company-a", _series("Total", ("2024", "185")), "user-1")
    metric_id = record.metrics[0].id

    first = await service.delete_metric("company-a", metric_id, "user-2")
    await db_session.commit()
    second = await service.delete_metric("company-a", metric_id, "user-3")

    assert second.id == first.id
    row = second.metrics[0]
    assert row.is_active is False
    assert row.last_updated_by == "user-2"
    assert second.summary_stats["total_irrigation_water"] == 0
    assert await service.get_metrics_by_category("company-a", "irrigation_water") == []


@pytest.mark.asyncio
async def test_delete_unknown_metric(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    await service.upsert_metric("company-a", RISK_LIST, "user-1")

    with pytest.raises(NotFoundError) as exc_info:
        await service.delete_metric("company-a", uuid4(), "user-1")

    assert exc_info.value.code == "METRIC_NOT_FOUND"


@pytest.mark.asyncio
async def test_upsert_after_delete_appends_new_metric(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    record = await service.upsert_metric("company-a", RISK_LIST, "user-1")
    await service.delete_metric("company-a", record.metrics[0].id, "user-1")

    record = await service.upsert_metric("company-a", RISK_LIST, "user-2")

    assert len(record.metrics) == 2
    assert [m.is_active for m in record.metrics] == [False, True]
    assert record.metrics[1].created_by == "user-2"
