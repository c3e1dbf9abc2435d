"""ESGTrack web route modules.

Each module exports a ``router`` (APIRouter instance); ``esgtrack.web.app``
includes them under the configured API prefix.

Usage:
    from esgtrack.web.routes import records
    app.include_router(records.router, prefix="/api/v1")
"""

from esgtrack.web.routes import categories, health, records

__all__ = [
    "categories",
    "health",
    "records",
]
