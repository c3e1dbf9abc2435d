"""End-to-end HTTP tests against the full application and an in-memory database."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from esgtrack.db.connection import close_db, init_db
from esgtrack.web.app import app

BASE = "/api/v1/irrigation/company/company-a"
USER = {"X-User-Id": "user-1"}


@pytest_asyncio.fixture()
async def client():
    await close_db()
    await init_db()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    await close_db()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"


@pytest.mark.asyncio
async def test_import_then_reimport_and_history(client, irrigation_csv):
    files = {"file": ("irrigation.csv", irrigation_csv, "text/csv")}

    first = await client.post(f"{BASE}/import-file", files=files, headers=USER)
    second = await client.post(
        f"{BASE}/import-file",
        files={"file": ("irrigation.csv", irrigation_csv, "text/csv")},
        data={"original_source": "Annual Report"},
        headers=USER,
    )

    assert first.status_code == 201
    assert first.json()["data"]["version"] == 1
    assert first.json()["data"]["summary_stats"]["total_irrigation_water"] == 553.0
    assert second.json()["data"]["version"] == 2

    versions = (await client.get(f"{BASE}/versions")).json()
    assert [v["version"] for v in versions["data"]] == [2, 1]
    assert versions["data"][0]["previous_version_id"] == first.json()["data"]["record_id"]

    active = (await client.get(f"{BASE}/records")).json()
    assert active["count"] == 1
    record = active["data"][0]
    assert record["original_source"] == "Annual Report"
    total = next(m for m in record["metrics"] if m["category"] == "irrigation_water")
    assert total["yearly_data"][0]["numeric_value"] == 185.0

    everything = (await client.get(f"{BASE}/records", params={"include_inactive": True})).json()
    assert everything["count"] == 2


@pytest.mark.asyncio
async def test_metric_lifecycle(client):
    metric = {
        "category": "risk",
        "metric_name": "Water Risks",
        "data_type": "list",
        "list_data": [{"item": "Drought"}],
    }

    created = await client.post(f"{BASE}/metrics", json=metric, headers=USER)
    assert created.status_code == 200
    record = created.json()["data"]
    assert record["version"] == 1
    metric_id = record["metrics"][0]["id"]

    by_category = (await client.get(f"{BASE}/category/risk")).json()
    assert by_category["count"] == 1

    deleted = await client.delete(f"{BASE}/metrics/{metric_id}", headers=USER)
    again = await client.delete(f"{BASE}/metrics/{metric_id}", headers=USER)
    assert deleted.status_code == 200
    assert again.status_code == 200
    assert (await client.get(f"{BASE}/category/risk")).json()["count"] == 0


@pytest.mark.asyncio
async def test_error_envelopes(client):
    missing_actor = await client.post(f"{BASE}/metrics", json={"category": "risk"})
    assert missing_actor.status_code == 401
    assert missing_actor.json()["success"] is False

    invalid = await client.post(
        f"{BASE}/metrics",
        json={"category": "coal_consumption", "metric_name": "Coal"},
        headers=USER,
    )
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "INVALID_CATEGORY"

    malformed = await client.post(f"{BASE}/metrics", json={"category": "risk"}, headers=USER)
    assert malformed.status_code == 400
    assert malformed.json()["code"] == "VALIDATION_ERROR"

    no_record = await client.get(f"{BASE}/summary")
    assert no_record.status_code == 404
    assert no_record.json()["code"] == "RECORD_NOT_FOUND"

    unknown_type = await client.get("/api/v1/payroll/company/company-a/records")
    assert unknown_type.status_code == 404


@pytest.mark.asyncio
async def test_validate_verify_restore_and_export(client):
    body = {
        "metrics": [
            {
                "category": "irrigation_water",
                "metric_name": "Total",
                "yearly_data": [{"year": "2024", "value": "185", "source": "report"}],
            },
            {
                "category": "risk",
                "metric_name": "Auditor",
                "data_type": "single_value",
                "single_value": {"value": None},
            },
        ]
    }
    v1 = (await client.post(f"{BASE}/records", json=body, headers=USER)).json()["data"]
    await client.post(f"{BASE}/import-json", json={"data": body}, headers=USER)

    report = (await client.post(f"{BASE}/validate", headers=USER)).json()["data"]
    assert report["validation_status"] == "failed_validation"
    assert report["data_quality_score"] <= 95

    verified = await client.patch(
        f"{BASE}/verification", json={"status": "verified", "notes": "ok"}, headers=USER
    )
    assert verified.json()["data"]["verification_status"] == "verified"

    bad_status = await client.patch(
        f"{BASE}/verification", json={"status": "approved"}, headers=USER
    )
    assert bad_status.status_code == 422

    restored = await client.post(f"{BASE}/versions/{v1['id']}/restore", headers=USER)
    assert restored.status_code == 200
    assert restored.json()["data"]["version"] == 3
    assert restored.json()["data"]["restored_from_id"] == v1["id"]

    other_company = await client.post(
        f"/api/v1/irrigation/company/company-b/versions/{v1['id']}/restore", headers=USER
    )
    assert other_company.status_code == 404
    assert other_company.json()["code"] == "VERSION_NOT_FOUND"

    series = (await client.get(f"{BASE}/metric/Total/timeseries")).json()
    assert series["data"][0]["year"] == "2024"

    export = await client.get(f"{BASE}/export")
    assert export.status_code == 200
    assert "filename=irrigation_efficiency-company-a-" in export.headers["content-disposition"]
    lines = export.text.strip().splitlines()
    assert lines[0].startswith('"Category"')
    assert '"irrigation_water","Total","2024","185"' in lines[1]


@pytest.mark.asyncio
async def test_bulk_endpoint_reports_partial_failure(client):
    response = await client.post(
        f"{BASE}/metrics/bulk",
        json={
            "metrics": [
                {"category": "risk", "metric_name": "A", "data_type": "list"},
                {"category": "nope", "metric_name": "B"},
            ]
        },
        headers=USER,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Bulk update completed: 1 successful, 1 failed"
    assert body["data"]["results"][1]["success"] is False


@pytest.mark.asyncio
async def test_categories_endpoint(client):
    response = await client.get("/api/v1/categories")

    assert response.status_code == 200
    assert response.json()["count"] == 9
