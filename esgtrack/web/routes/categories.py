"""Record type catalogue routes.

Routes:
- GET /categories - Record types with their slugs and allowed categories
"""

from __future__ import annotations

from fastapi import APIRouter

from esgtrack.categories import all_definitions
from esgtrack.web.models import ok

router = APIRouter(tags=["categories"])


@router.get("/categories")
async def list_categories():
    data = [
        {
            "record_type": definition.key,
            "slug": definition.slug,
            "label": definition.label,
            "categories": list(definition.categories),
            "summary_stats": [rule.name for rule in definition.summary_rules],
        }
        for definition in all_definitions()
    ]
    return ok(data, count=len(data))
