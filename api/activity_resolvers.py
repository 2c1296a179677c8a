"""Activity-related GraphQL resolvers."""

import logging
from typing import Any, Optional

from ariadne import MutationType, ObjectType, QueryType

from errors import ExternalLookupError
from Events.event import Activity, ActivityFields
from utils import parse_model

from .utils import _filters, _parse_id, services

logger = logging.getLogger(__name__)

ACTIVITY = "activity"

query = QueryType()
mutation = MutationType()
activity_type = ObjectType("Activity")


@query.field("activity")
async def resolve_activity(_: Any, info: Any, id: str) -> Optional[dict[str, Any]]:
    return await services(info).activities.select_one({"id": _parse_id(id, logger, ACTIVITY)})


@query.field("activities")
async def resolve_activities(
    _: Any, info: Any, activity: Optional[dict[str, Any]] = None
) -> list[dict[str, Any]]:
    filters = _filters(activity, logger, id_fields=("id", "event_id"))
    return await services(info).activities.select_many(filters)


@mutation.field("createActivity")
async def resolve_create_activity(_: Any, info: Any, activity: dict[str, Any]) -> dict[str, Any]:
    """
    Add an Activity to an existing Event.

    Raises:
        ValidationFailure: malformed payload or an end before the start.
        ExternalLookupError: the referenced event does not exist.
    """

    candidate: Activity = parse_model(Activity, activity)
    store = services(info)

    event = await store.events.select_one({"id": str(candidate.event_id)})
    if event is None:
        raise ExternalLookupError("Event", "not found", "event_id")

    created = await store.activities.insert(candidate.to_dict())
    logger.info("Activity created", extra={"activity_id": created["id"], "event_id": event["id"]})
    return created


@mutation.field("updateActivity")
async def resolve_update_activity(_: Any, info: Any, activity: dict[str, Any]) -> Optional[dict[str, Any]]:
    changes = dict(activity)
    activity_id = _parse_id(changes.pop("id"), logger, ACTIVITY)
    fields: ActivityFields = parse_model(ActivityFields, changes)
    updates = fields.model_dump(mode="json", exclude_unset=True, exclude_none=True)

    store = services(info).activities
    if not updates:
        return await store.select_one({"id": activity_id})
    return await store.update_by_id(activity_id, updates)


@mutation.field("deleteActivity")
async def resolve_delete_activity(_: Any, info: Any, id: str) -> bool:
    activity_id = _parse_id(id, logger, ACTIVITY)
    deleted = await services(info).activities.delete_by_id(activity_id)
    if deleted:
        logger.info("Activity deleted", extra={"activity_id": activity_id})
    return deleted


@activity_type.field("event")
async def resolve_activity_event(activity: dict[str, Any], info: Any) -> Optional[dict[str, Any]]:
    return await services(info).events.select_one({"id": activity["event_id"]})
