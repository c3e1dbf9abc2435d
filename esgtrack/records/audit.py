"""Actor stamping for incoming metric payloads.

Each payload type is registered explicitly, so only fields the schema
declares as audit fields are filled, and only where they are still unset.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import singledispatch
from typing import Any

from esgtrack.models import (
    ListItem,
    ListPayload,
    MetricIn,
    SingleValue,
    SingleValuePayload,
    SummaryPayload,
    SummaryValue,
    YearlySeriesPayload,
    YearlyValue,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@singledispatch
def stamp_actor(node: Any, actor_id: str, now: datetime | None = None) -> None:
    """Fill unset ``created_by``/``added_by`` fields with ``actor_id``.

    Walks a metric and every value nested in its payload. Existing values
    are never overwritten.

    Raises:
        TypeError: If ``node`` is not a known payload type
    """
    raise TypeError(f"Cannot stamp actor on {type(node).__name__}")


@stamp_actor.register(list)
def _stamp_list(node: list, actor_id: str, now: datetime | None = None) -> None:
    for child in node:
        stamp_actor(child, actor_id, now)


@stamp_actor.register(MetricIn)
def _stamp_metric(node: MetricIn, actor_id: str, now: datetime | None = None) -> None:
    now = now or utcnow()
    if node.created_by is None:
        node.created_by = actor_id
    for child in (node.yearly_data, node.single_value, node.list_data, node.summary_value):
        if child is not None:
            stamp_actor(child, actor_id, now)


@stamp_actor.register(YearlySeriesPayload)
def _stamp_yearly_payload(node: YearlySeriesPayload, actor_id: str, now: datetime | None = None) -> None:
    stamp_actor(node.yearly_data, actor_id, now)


@stamp_actor.register(SingleValuePayload)
def _stamp_single_payload(node: SingleValuePayload, actor_id: str, now: datetime | None = None) -> None:
    if node.single_value is not None:
        stamp_actor(node.single_value, actor_id, now)


@stamp_actor.register(ListPayload)
def _stamp_list_payload(node: ListPayload, actor_id: str, now: datetime | None = None) -> None:
    stamp_actor(node.list_data, actor_id, now)


@stamp_actor.register(YearlyValue)
@stamp_actor.register(SingleValue)
@stamp_actor.register(ListItem)
def _stamp_value(node: YearlyValue | SingleValue | ListItem, actor_id: str, now: datetime | None = None) -> None:
    if node.added_by is None:
        node.added_by = actor_id
    if node.added_at is None:
        node.added_at = now or utcnow()


@stamp_actor.register(SummaryPayload)
@stamp_actor.register(SummaryValue)
def _stamp_nothing(node: SummaryPayload | SummaryValue, actor_id: str, now: datetime | None = None) -> None:
    # Summary values carry no audit fields
    return None
