"""Event-related GraphQL resolvers."""

import logging
from typing import Any, Optional

from ariadne import MutationType, ObjectType, QueryType

from errors import ValidationFailure
from Events.event import Event, EventFields
from utils import parse_model

from .utils import _filters, _parse_id, _parse_optional_id, services

logger = logging.getLogger(__name__)

EVENT = "event"

query = QueryType()
mutation = MutationType()
event_type = ObjectType("Event")


@query.field("event")
async def resolve_event(
    _: Any, info: Any, id: Optional[str] = None, sympla_id: Optional[str] = None
) -> Optional[dict[str, Any]]:
    """
    Find an event by its id or its Sympla id.

    Raises:
        ValidationFailure: when neither identifier is supplied.
    """

    selectors = {
        key: value
        for key, value in {"id": _parse_optional_id(id, logger, EVENT), "sympla_id": sympla_id}.items()
        if value is not None
    }
    if not selectors:
        raise ValidationFailure(rule="required", attribute="selector")
    return await services(info).events.select_one(any_of=selectors)


@query.field("events")
async def resolve_events(_: Any, info: Any, event: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
    return await services(info).events.select_many(_filters(event, logger))


@mutation.field("createEvent")
async def resolve_create_event(_: Any, info: Any, event: dict[str, Any]) -> dict[str, Any]:
    """
    Add an Event to the database.

    Raises:
        ValidationFailure: malformed payload or an end before the start.
        DuplicateKeyError: another event already carries this Sympla id.
    """

    candidate: Event = parse_model(Event, event)
    created = await services(info).events.insert(candidate.to_dict())
    logger.info("Event created", extra={"event_id": created["id"], "sympla_id": candidate.sympla_id})
    return created


@mutation.field("updateEvent")
async def resolve_update_event(_: Any, info: Any, event: dict[str, Any]) -> Optional[dict[str, Any]]:
    changes = dict(event)
    event_id = _parse_id(changes.pop("id"), logger, EVENT)
    fields: EventFields = parse_model(EventFields, changes)
    updates = fields.model_dump(mode="json", exclude_unset=True, exclude_none=True)

    store = services(info).events
    if not updates:
        return await store.select_one({"id": event_id})

    updated = await store.update_by_id(event_id, updates)
    if updated is not None:
        logger.info("Event updated", extra={"event_id": event_id, "fields": sorted(updates)})
    return updated


@event_type.field("activities")
async def resolve_event_activities(event: dict[str, Any], info: Any) -> list[dict[str, Any]]:
    return await services(info).activities.select_many({"event_id": event["id"]})
