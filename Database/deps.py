"""Request-scoped access to the services built once at application startup."""

from dataclasses import dataclass
from typing import Any

from fastapi import Request

from Database.store import (
    ACTIVITIES_TABLE_NAME,
    EVENTS_TABLE_NAME,
    TICKETS_TABLE_NAME,
    Collection,
    UserStore,
)
from Tickets.sympla import SymplaClient
from Tickets.workflow import AddTicketWorkflow


@dataclass
class Services:
    """Stores and clients shared by every GraphQL resolver."""

    users: UserStore
    events: Collection
    tickets: Collection
    activities: Collection
    sympla: SymplaClient
    add_ticket: AddTicketWorkflow


def build_services(db: Any, sympla: SymplaClient) -> Services:
    """Wire the stores and the add-ticket workflow around one database client."""

    events = Collection(db, EVENTS_TABLE_NAME)
    tickets = Collection(db, TICKETS_TABLE_NAME)
    users = UserStore(db, tickets=tickets, events=events)
    return Services(
        users=users,
        events=events,
        tickets=tickets,
        activities=Collection(db, ACTIVITIES_TABLE_NAME),
        sympla=sympla,
        add_ticket=AddTicketWorkflow(events=events, tickets=tickets, users=users, provider=sympla),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
