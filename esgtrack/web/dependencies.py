"""Shared dependencies for ESGTrack web routes.

Usage:
    from fastapi import Depends
    from esgtrack.web.dependencies import get_record_definition, require_actor

    @router.post("/metrics")
    async def upsert(
        company_id: str,
        definition: CategoryDefinition = Depends(get_record_definition),
        actor_id: str = Depends(require_actor),
    ):
        ...
"""

from __future__ import annotations

from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession

from esgtrack.categories import CategoryDefinition, get_definition
from esgtrack.config import get_config
from esgtrack.errors import AuthenticationError
from esgtrack.records import VersionedRecordService


def get_record_definition(record_type: str) -> CategoryDefinition:
    """Resolve the ``{record_type}`` path segment (slug or key).

    Raises:
        NotFoundError: For an unknown record type (404)
    """
    return get_definition(record_type)


def require_actor(x_user_id: str | None = Header(default=None)) -> str:
    """Identity of the caller, taken from the ``X-User-Id`` header.

    Authentication happens upstream; this only makes sure mutating calls
    name the user recorded in audit fields.

    Raises:
        AuthenticationError: If the header is missing or blank (401)
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError("X-User-Id header is required for this operation")
    return x_user_id.strip()


def build_service(session: AsyncSession, definition: CategoryDefinition) -> VersionedRecordService:
    """Record service bound to the request's session."""
    return VersionedRecordService(
        session,
        definition,
        default_source=get_config().imports.default_source_label,
    )
