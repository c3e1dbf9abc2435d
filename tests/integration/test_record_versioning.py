"""Integration tests for record imports and version chaining.

Every import installs a new version; the previous one is expired in the same
transaction and linked through ``previous_version_id``.
"""

from __future__ import annotations

import json

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from esgtrack.errors import ValidationError
from esgtrack.models import ImportMetadata
from esgtrack.records import RecordStore, VersionedRecordService


@pytest.mark.asyncio
async def test_csv_import_creates_first_version(db_session: AsyncSession, irrigation, irrigation_csv):
    service = VersionedRecordService(db_session, irrigation)

    record = await service.import_from_file(irrigation_csv, "irrigation.csv", "company-a", "user-1")
    await db_session.commit()

    assert record.version == 1
    assert record.is_active is True
    assert record.previous_version_id is None
    assert record.import_source == "csv"
    assert record.import_batch_id.startswith("csv_import_")
    assert record.source_file_name == "irrigation.csv"
    assert record.source_files[0]["name"] == "irrigation.csv"
    assert record.source_files[0]["size"] == len(irrigation_csv)
    assert (record.data_period_start, record.data_period_end) == ("2022", "2024")
    assert record.created_by == "user-1"

    metrics = {m.metric_name: m for m in service.to_metrics(record)}
    total = metrics["Total Irrigation Water (million ML)"]
    assert total.category == "irrigation_water"
    assert total.created_by == "user-1"
    assert [v.numeric_value for v in total.payload.yearly_data] == [185.0, 190.0, 178.0]
    assert total.payload.yearly_data[0].added_by == "user-1"
    assert metrics["Effluent Discharged (thousand ML)"].payload.yearly_data[0].numeric_value == 1200.0

    stats = record.summary_stats
    assert stats["total_irrigation_water"] == 553.0
    assert stats["total_effluent_discharged"] == 3280.0
    assert stats["water_sources_count"] == 2
    assert "last_updated" in stats


@pytest.mark.asyncio
async def test_second_import_supersedes_first(db_session: AsyncSession, irrigation, irrigation_csv):
    service = VersionedRecordService(db_session, irrigation)

    first = await service.import_from_file(irrigation_csv, "irrigation.csv", "company-a", "user-1")
    await db_session.commit()
    second = await service.import_from_file(irrigation_csv, "irrigation.csv", "company-a", "user-2")
    await db_session.commit()

    assert second.version == 2
    assert second.previous_version_id == first.id
    assert second.is_active is True
    assert first.is_active is False

    store = RecordStore(db_session, irrigation.key)
    assert await store.count_active("company-a") == 1
    assert (await store.get_active("company-a")).id == second.id

    versions = await service.get_versions("company-a")
    assert [v.version for v in versions] == [2, 1]
    assert [v.is_active for v in versions] == [True, False]


@pytest.mark.asyncio
async def test_import_metadata_overrides_source_and_period(db_session: AsyncSession, irrigation, irrigation_csv):
    service = VersionedRecordService(db_session, irrigation)

    record = await service.import_from_file(
        irrigation_csv,
        "irrigation.csv",
        "company-a",
        "user-1",
        ImportMetadata(original_source="Annual Report 2024", data_period_start="2020"),
    )

    assert record.original_source == "Annual Report 2024"
    assert record.data_period_start == "2020"
    assert record.data_period_end == "2024"
    metric = service.to_metrics(record)[0]
    assert metric.payload.yearly_data[0].source == "Annual Report 2024"


@pytest.mark.asyncio
async def test_json_file_with_metrics_document(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    document = {
        "metrics": [
            {
                "category": "water_per_hectare",
                "metric_name": "Water per Hectare",
                "yearly_data": [{"year": 2024, "value": 11.8, "source": "manual"}],
            }
        ],
        "gri_references": ["GRI 303-3"],
        "verification_status": "pending_review",
    }

    record = await service.import_from_file(
        json.dumps(document).encode(), "irrigation.json", "company-a", "user-1"
    )

    assert record.import_source == "manual"
    assert record.import_batch_id.startswith("json_import_")
    assert record.gri_references == ["GRI 303-3"]
    assert record.verification_status == "pending_review"
    assert record.summary_stats["avg_water_per_hectare"] == 11.8


@pytest.mark.asyncio
async def test_import_json_payload_is_not_modified(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    payload = {
        "metrics": [
            {
                "category": "risk",
                "metric_name": "Drought",
                "data_type": "single_value",
                "single_value": {"value": "High"},
            }
        ]
    }

    record = await service.import_from_json(payload, "company-a", "user-1")

    assert record.version == 1
    assert record.import_batch_id.startswith("manual_import_")
    assert "created_by" not in payload["metrics"][0]
    assert service.to_metrics(record)[0].created_by == "user-1"


@pytest.mark.asyncio
async def test_import_json_requires_metrics_array(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError) as exc_info:
        await service.import_from_json({"data": []}, "company-a", "user-1")

    assert exc_info.value.code == "MISSING_METRICS"


@pytest.mark.asyncio
async def test_file_without_recognised_metrics_is_rejected(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError) as exc_info:
        await service.import_from_file(b"Name,Colour\nfoo,blue\n", "other.csv", "company-a", "user-1")

    assert exc_info.value.code == "NO_METRICS_FOUND"
    assert await service.get_company_records("company-a") == []


@pytest.mark.asyncio
async def test_wide_csv_import_keeps_leading_columns(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)
    header = ["Year", "Total Irrigation Water (million ML)", *(f"Note {i}" for i in range(70))]
    row = ["2024", "185", *("" for _ in range(70))]
    body = "\n".join([",".join(header), ",".join(row)]).encode()

    record = await service.import_from_file(body, "wide.csv", "company-a", "user-1")

    metrics = {m.metric_name: m for m in service.to_metrics(record)}
    total = metrics["Total Irrigation Water (million ML)"]
    assert total.payload.yearly_data[0].year == "2024"
    assert total.payload.yearly_data[0].numeric_value == 185.0


@pytest.mark.asyncio
async def test_unsupported_file_type(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError) as exc_info:
        await service.import_from_file(b"%PDF", "report.pdf", "company-a", "user-1")

    assert exc_info.value.code == "UNSUPPORTED_FILE_TYPE"


@pytest.mark.asyncio
async def test_create_record_supersedes_active_version(db_session: AsyncSession, irrigation, irrigation_csv):
    service = VersionedRecordService(db_session, irrigation)
    await service.import_from_file(irrigation_csv, "irrigation.csv", "company-a", "user-1")

    record = await service.create_record(
        "company-a",
        {
            "metrics": [
                {
                    "category": "irrigation_water",
                    "metric_name": "Total Irrigation Water",
                    "yearly_data": [{"year": "2025", "value": "200", "source": "manual"}],
                }
            ]
        },
        "user-2",
    )

    assert record.version == 2
    assert record.import_source == "manual"
    assert record.summary_stats["total_irrigation_water"] == 200.0
    assert len(record.metrics) == 1


@pytest.mark.asyncio
async def test_create_record_rejects_foreign_category(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError) as exc_info:
        await service.create_record(
            "company-a",
            {"metrics": [{"category": "coal_consumption", "metric_name": "Coal"}]},
            "user-1",
        )

    assert exc_info.value.code == "INVALID_CATEGORY"
    assert "water_sources" in exc_info.value.details["allowed"]


@pytest.mark.asyncio
async def test_create_record_requires_metrics(db_session: AsyncSession, irrigation):
    service = VersionedRecordService(db_session, irrigation)

    with pytest.raises(ValidationError):
        await service.create_record("company-a", {"metrics": []}, "user-1")
