"""Ticket reads. Tickets are only written through ``addTicket``."""

import logging
from typing import Any, Optional

from ariadne import ObjectType, QueryType

from Database.store import populate_events

from .utils import _filters, _parse_id, services

logger = logging.getLogger(__name__)

TICKET = "ticket"

query = QueryType()
ticket_type = ObjectType("Ticket")


@query.field("ticket")
async def resolve_ticket(_: Any, info: Any, id: str) -> Optional[dict[str, Any]]:
    store = services(info)
    ticket = await store.tickets.select_one({"id": _parse_id(id, logger, TICKET)})
    if ticket is None:
        return None
    populated = await populate_events([ticket], store.events)
    return populated[0]


@query.field("tickets")
async def resolve_tickets(_: Any, info: Any, ticket: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
    filters = _filters(ticket, logger, id_fields=("id", "user_id", "event_id"))
    return await services(info).tickets.select_many(filters)


@ticket_type.field("user")
def resolve_ticket_user(ticket: dict[str, Any], _: Any) -> str:
    return str(ticket["user_id"])


@ticket_type.field("event")
async def resolve_ticket_event(ticket: dict[str, Any], info: Any) -> Optional[dict[str, Any]]:
    if "event" in ticket:
        return ticket["event"]
    return await services(info).events.select_one({"id": ticket["event_id"]})
