"""User queries and mutations, including the add-ticket flow."""

import logging
from typing import Any, Optional

from ariadne import MutationType, ObjectType, QueryType

from .utils import _filters, _parse_id, _parse_optional_id, services

logger = logging.getLogger(__name__)

USER = "user"

query = QueryType()
mutation = MutationType()
user_type = ObjectType("User")


@query.field("user")
async def resolve_user(
    _: Any,
    info: Any,
    id: Optional[str] = None,
    ida: Optional[str] = None,
    email: Optional[str] = None,
    cpf: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    '''Find a user by id, external id, email or cpf.'''

    return await services(info).users.find_one(
        id=_parse_optional_id(id, logger, USER),
        ida=ida,
        email=email,
        cpf=cpf,
    )


@query.field("users")
async def resolve_users(_: Any, info: Any, user: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
    return await services(info).users.find_all(_filters(user, logger))


@mutation.field("createUser")
async def resolve_create_user(_: Any, info: Any, user: dict[str, Any]) -> dict[str, Any]:
    '''Add a User to the database if email, cpf and ida are not taken.'''

    return await services(info).users.create(user)


@mutation.field("updateUser")
async def resolve_update_user(_: Any, info: Any, user: dict[str, Any]) -> Optional[dict[str, Any]]:
    changes = {**user, "id": _parse_id(user["id"], logger, USER)}
    return await services(info).users.update(changes)


@mutation.field("addTicket")
async def resolve_add_ticket(
    _: Any, info: Any, code: str, user_id: str, sympla_event_id: str
) -> dict[str, Any]:
    '''Fetch a ticket from Sympla and attach it to the user.'''

    return await services(info).add_ticket.run(
        code=code,
        user_id=_parse_id(user_id, logger, USER, "user_id"),
        sympla_event_id=sympla_event_id,
    )


@mutation.field("relinkTickets")
async def resolve_relink_tickets(_: Any, info: Any, user_id: str) -> Optional[dict[str, Any]]:
    return await services(info).add_ticket.relink(_parse_id(user_id, logger, USER, "user_id"))


@user_type.field("tickets")
async def resolve_user_tickets(user: dict[str, Any], info: Any) -> list[dict[str, Any]]:
    tickets = user.get("tickets") or []
    if all(isinstance(ticket, dict) for ticket in tickets):
        return tickets
    populated = await services(info).users.populate(user)
    return populated["tickets"]
