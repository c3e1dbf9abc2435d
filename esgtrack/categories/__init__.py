"""Registry of ESG record types."""

from __future__ import annotations

from esgtrack.categories.definitions import DEFINITIONS
from esgtrack.categories.layout import CategoryDefinition, SummaryRule
from esgtrack.errors import NotFoundError

_BY_NAME: dict[str, CategoryDefinition] = {}
for _definition in DEFINITIONS:
    _BY_NAME[_definition.key] = _definition
    _BY_NAME[_definition.slug] = _definition


def get_definition(name: str) -> CategoryDefinition:
    """Look up a record type by key ("irrigation_efficiency") or slug ("irrigation").

    Raises:
        NotFoundError: If no record type has that name
    """
    try:
        return _BY_NAME[name]
    except KeyError:
        raise NotFoundError(
            f"Unknown record type '{name}'", code="UNKNOWN_RECORD_TYPE"
        ) from None


def all_definitions() -> tuple[CategoryDefinition, ...]:
    return DEFINITIONS


__all__ = ["CategoryDefinition", "SummaryRule", "all_definitions", "get_definition"]
