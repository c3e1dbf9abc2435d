"""Versioned record routes for ESGTrack.

All routes are scoped to one record type and one company:
``/api/v1/{record_type}/company/{company_id}``. ``record_type`` is a slug
("irrigation") or key ("irrigation_efficiency"). Mutating routes need an
``X-User-Id`` header.

Routes:
- POST   /import-file                     - Import CSV/Excel/JSON file as new version
- POST   /import-json                     - Import JSON metrics document as new version
- GET    /records                         - List records (active only by default)
- POST   /records                         - Create record from full payload
- GET    /records/{record_id}             - Get one version
- GET    /category/{category}             - Active metrics of a category
- GET    /data-type/{data_type}           - Active metrics of a data type
- GET    /metric/{metric_name}/timeseries - Yearly values of a metric
- POST   /metrics                         - Upsert one metric
- POST   /metrics/bulk                    - Upsert many metrics (partial failure)
- DELETE /metrics/{metric_id}             - Soft-delete a metric
- GET    /summary                         - Summary statistics
- POST   /validate                        - Score completeness
- PATCH  /verification                    - Update verification status
- GET    /versions                        - Version history
- POST   /versions/{version_id}/restore   - Restore a version as new active one
- GET    /export                          - CSV download
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from esgtrack.categories import CategoryDefinition
from esgtrack.config import get_config
from esgtrack.db.connection import get_session
from esgtrack.errors import ValidationError
from esgtrack.models import ImportMetadata, RecordView
from esgtrack.records.export import export_filename, export_metrics_csv
from esgtrack.web.dependencies import build_service, get_record_definition, require_actor
from esgtrack.web.models import (
    BulkUpsertRequest,
    ImportJSONRequest,
    VerificationRequest,
    import_summary,
    ok,
)

router = APIRouter(prefix="/{record_type}/company/{company_id}", tags=["records"])


# ============================================================================
# Imports
# ============================================================================


@router.post("/import-file", status_code=status.HTTP_201_CREATED)
async def import_file(
    company_id: str,
    file: UploadFile = File(...),
    data_period_start: str | None = Form(default=None),
    data_period_end: str | None = Form(default=None),
    original_source: str | None = Form(default=None),
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    """Import an uploaded file as the company's new record version."""
    buffer = await file.read()
    max_bytes = get_config().imports.max_upload_bytes
    if len(buffer) > max_bytes:
        raise ValidationError(
            f"File exceeds the {max_bytes} byte upload limit", code="FILE_TOO_LARGE"
        )

    metadata = ImportMetadata(
        file_name=file.filename,
        original_source=original_source,
        data_period_start=data_period_start,
        data_period_end=data_period_end,
    )
    async with get_session() as session:
        service = build_service(session, definition)
        record = await service.import_from_file(
            buffer, file.filename or "", company_id, actor_id, metadata
        )
        data = import_summary(record)

    return ok(data, message=f"{definition.label} data imported successfully")


@router.post("/import-json", status_code=status.HTTP_201_CREATED)
async def import_json(
    company_id: str,
    body: ImportJSONRequest,
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    """Import a JSON metrics document as the company's new record version."""
    metadata = ImportMetadata(file_name=body.file_name, original_source=body.original_source)
    async with get_session() as session:
        service = build_service(session, definition)
        record = await service.import_from_json(body.data, company_id, actor_id, metadata)
        data = import_summary(record)

    return ok(data, message=f"{definition.label} JSON data imported successfully")


# ============================================================================
# Records
# ============================================================================


@router.get("/records")
async def list_records(
    company_id: str,
    include_inactive: bool = Query(default=False),
    definition: CategoryDefinition = Depends(get_record_definition),
):
    async with get_session() as session:
        records = await build_service(session, definition).get_company_records(
            company_id, include_inactive
        )
        data = [RecordView.model_validate(record) for record in records]

    return ok(data, count=len(data))


@router.post("/records", status_code=status.HTTP_201_CREATED)
async def create_record(
    company_id: str,
    body: dict[str, Any] = Body(...),
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    async with get_session() as session:
        record = await build_service(session, definition).create_record(
            company_id, body, actor_id
        )
        data = RecordView.model_validate(record)

    return ok(data, message="Record created successfully")


@router.get("/records/{record_id}")
async def get_record(
    company_id: str,
    record_id: UUID,
    definition: CategoryDefinition = Depends(get_record_definition),
):
    async with get_session() as session:
        record = await build_service(session, definition).get_record(record_id, company_id)
        data = RecordView.model_validate(record)

    return ok(data)


# ============================================================================
# Metric queries
# ============================================================================


@router.get("/category/{category}")
async def metrics_by_category(
    company_id: str,
    category: str,
    definition: CategoryDefinition = Depends(get_record_definition),
):
    async with get_session() as session:
        metrics = await build_service(session, definition).get_metrics_by_category(
            company_id, category
        )

    return ok([metric.as_dict() for metric in metrics], count=len(metrics))


@router.get("/data-type/{data_type}")
async def metrics_by_data_type(
    company_id: str,
    data_type: str,
    definition: CategoryDefinition = Depends(get_record_definition),
):
    async with get_session() as session:
        metrics = await build_service(session, definition).get_metrics_by_data_type(
            company_id, data_type
        )

    return ok([metric.as_dict() for metric in metrics], count=len(metrics))


@router.get("/metric/{metric_name}/timeseries")
async def metric_time_series(
    company_id: str,
    metric_name: str,
    category: str | None = Query(default=None),
    definition: CategoryDefinition = Depends(get_record_definition),
):
    async with get_session() as session:
        series = await build_service(session, definition).get_time_series(
            company_id, metric_name, category
        )

    return ok(series, count=len(series))


# ============================================================================
# Metric mutation
# ============================================================================


@router.post("/metrics")
async def upsert_metric(
    company_id: str,
    body: dict[str, Any] = Body(...),
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    """Insert or update one metric, keyed by (category, metric_name)."""
    async with get_session() as session:
        record = await build_service(session, definition).upsert_metric(
            company_id, body, actor_id
        )
        data = RecordView.model_validate(record)

    return ok(data, message="Metric saved successfully")


@router.post("/metrics/bulk")
async def bulk_upsert_metrics(
    company_id: str,
    body: BulkUpsertRequest,
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    """Upsert many metrics; failures are reported per item."""
    async with get_session() as session:
        result = await build_service(session, definition).bulk_upsert_metrics(
            company_id, body.metrics, actor_id
        )

    return ok(
        result,
        message=f"Bulk update completed: {result.successful} successful, {result.failed} failed",
    )


@router.delete("/metrics/{metric_id}")
async def delete_metric(
    company_id: str,
    metric_id: UUID,
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    async with get_session() as session:
        record = await build_service(session, definition).delete_metric(
            company_id, metric_id, actor_id
        )
        data = {"record_id": record.id, "metric_id": metric_id, "version": record.version}

    return ok(data, message="Metric deleted successfully")


# ============================================================================
# Workflow
# ============================================================================


@router.get("/summary")
async def summary(
    company_id: str,
    definition: CategoryDefinition = Depends(get_record_definition),
):
    async with get_session() as session:
        data = await build_service(session, definition).get_summary_stats(company_id)

    return ok(data)


@router.post("/validate")
async def validate(
    company_id: str,
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    async with get_session() as session:
        report = await build_service(session, definition).validate_data(company_id)

    return ok(report, message="Data validation completed")


@router.patch("/verification")
async def update_verification(
    company_id: str,
    body: VerificationRequest,
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    async with get_session() as session:
        record = await build_service(session, definition).update_verification_status(
            company_id, body.status, actor_id, body.notes
        )
        data = {
            "record_id": record.id,
            "verification_status": record.verification_status,
            "verified_by": record.verified_by,
            "verified_at": record.verified_at,
        }

    return ok(data, message=f"Verification status updated to {body.status.value}")


# ============================================================================
# Versions & export
# ============================================================================


@router.get("/versions")
async def list_versions(
    company_id: str,
    definition: CategoryDefinition = Depends(get_record_definition),
):
    async with get_session() as session:
        versions = await build_service(session, definition).get_versions(company_id)

    return ok(versions, count=len(versions))


@router.post("/versions/{version_id}/restore")
async def restore_version(
    company_id: str,
    version_id: UUID,
    definition: CategoryDefinition = Depends(get_record_definition),
    actor_id: str = Depends(require_actor),
):
    async with get_session() as session:
        record = await build_service(session, definition).restore_version(
            company_id, version_id, actor_id
        )
        data = RecordView.model_validate(record)

    return ok(data, message="Version restored successfully")


@router.get("/export")
async def export_csv(
    company_id: str,
    category: str | None = Query(default=None),
    definition: CategoryDefinition = Depends(get_record_definition),
):
    """Download the active record's metrics as CSV."""
    async with get_session() as session:
        service = build_service(session, definition)
        record = await service.get_active_record(company_id)
        metrics = service.to_metrics(record)
        verification_status = record.verification_status

    filename = export_filename(definition.key, company_id)
    return StreamingResponse(
        export_metrics_csv(metrics, verification_status, category),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
