"""Request and response models for the ESGTrack web API.

Metric and record bodies are accepted as plain dictionaries by the routes
and validated by the service, so malformed metrics surface as 400 errors
with the service's error codes.
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from esgtrack.db.models import EsgRecordModel
from esgtrack.models import VerificationStatus


# ============================================================================
# Requests
# ============================================================================


class ImportJSONRequest(BaseModel):
    """Used by: POST /import-json"""

    data: dict[str, Any]
    file_name: str | None = None
    original_source: str | None = None


class VerificationRequest(BaseModel):
    """Used by: PATCH /verification"""

    status: VerificationStatus
    notes: str = ""


class BulkUpsertRequest(BaseModel):
    """Used by: POST /metrics/bulk"""

    metrics: list[dict[str, Any]] = Field(min_length=1)


# ============================================================================
# Responses
# ============================================================================


def ok(data: Any, **extra: Any) -> dict[str, Any]:
    """Success envelope: ``{"success": true, ..., "data": ...}``."""
    return {"success": True, **extra, "data": jsonable_encoder(data)}


def import_summary(record: EsgRecordModel) -> dict[str, Any]:
    """Short description of an installed import."""
    return {
        "record_id": record.id,
        "version": record.version,
        "import_date": record.import_date,
        "import_source": record.import_source,
        "import_batch_id": record.import_batch_id,
        "metrics_count": len(record.metrics),
        "summary_stats": record.summary_stats,
    }
