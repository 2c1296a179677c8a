"""
Add-ticket flow: attach a Sympla ticket to a local user.

1. resolve the owner and the local event from its Sympla id
2. fetch the participant ticket from Sympla
3. map and store the ticket for the owner and event
4. push the ticket id onto the owner's ticket list

The push runs as its own store statement. When it fails the freshly stored
ticket is deleted again so no ticket is left without its owner reference;
``relink`` repairs owners whose list misses tickets they own.
"""

import logging
from typing import Any, Optional, Protocol

from postgrest.exceptions import APIError

from errors import ExternalLookupError, TicketLinkError
from Tickets.ticket import Ticket
from utils import parse_model

logger = logging.getLogger(__name__)


class TicketProvider(Protocol):
    async def get_ticket(self, event_id: str, ticket_number: str) -> dict[str, Any]:
        ...

    def map_ticket(self, payload: dict[str, Any]) -> dict[str, Any]:
        ...


class RecordStore(Protocol):
    async def insert(self, payload: dict[str, Any]) -> dict[str, Any]:
        ...

    async def select_one(
        self,
        filters: Optional[dict[str, Any]] = None,
        any_of: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        ...

    async def select_many(
        self,
        filters: Optional[dict[str, Any]] = None,
        any_of: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        ...

    async def delete_by_id(self, record_id: Any) -> bool:
        ...


class TicketOwners(RecordStore, Protocol):
    async def push_ticket(self, user_id: str, ticket_id: str) -> Optional[dict[str, Any]]:
        ...

    async def populate(self, user: dict[str, Any]) -> dict[str, Any]:
        ...


class AddTicketWorkflow:
    """Orchestrates the event lookup, Sympla fetch, ticket write and owner link."""

    def __init__(
        self,
        events: RecordStore,
        tickets: RecordStore,
        users: TicketOwners,
        provider: TicketProvider,
    ) -> None:
        self.events = events
        self.tickets = tickets
        self.users = users
        self.provider = provider

    async def _find(self, store: RecordStore, filters: dict[str, Any], kind: str, attribute: str) -> dict[str, Any]:
        try:
            record = await store.select_one(filters)
        except APIError as exc:
            logger.exception(f"{kind} lookup failed", extra={"filters": filters})
            raise ExternalLookupError("Database", "unavailable", attribute) from exc
        if record is None:
            raise ExternalLookupError(kind, "not found", attribute)
        return record

    async def _lookup(self, code: str, user_id: str, sympla_event_id: str) -> tuple[dict[str, Any], dict[str, Any]]:
        await self._find(self.users, {"id": user_id}, "User", "user_id")
        event = await self._find(self.events, {"sympla_id": sympla_event_id}, "Event", "event")

        raw_ticket = await self.provider.get_ticket(event_id=sympla_event_id, ticket_number=code)
        return event, raw_ticket

    async def _compensate(self, ticket_id: str, user_id: str) -> bool:
        removed = False
        try:
            removed = await self.tickets.delete_by_id(ticket_id)
        except APIError:
            logger.exception("Failed to remove unlinked ticket", extra={"ticket_id": ticket_id, "user_id": user_id})
        if not removed:
            logger.error(
                "Ticket left without owner reference; run relink for the user",
                extra={"ticket_id": ticket_id, "user_id": user_id},
            )
        return removed

    async def _link(self, ticket_id: str, user_id: str) -> None:
        try:
            await self.users.push_ticket(user_id, ticket_id)
        except APIError as exc:
            logger.exception("Failed to push ticket onto user", extra={"ticket_id": ticket_id, "user_id": user_id})
            compensated = await self._compensate(ticket_id, user_id)
            raise TicketLinkError(ticket_id, user_id, compensated) from exc

    async def run(self, code: str, user_id: str, sympla_event_id: str) -> dict[str, Any]:
        """
        Add the Sympla ticket ``code`` of ``sympla_event_id`` to ``user_id``.

        Returns:
            The stored ticket, with a string ``id``.

        Raises:
            ExternalLookupError: the owner or event is unknown, or the Sympla
                lookup failed.
            DuplicateKeyError: the ticket was already added for this event.
            TicketLinkError: the ticket could not be pushed onto its owner.
        """

        event, raw_ticket = await self._lookup(code, user_id, sympla_event_id)

        mapped = self.provider.map_ticket(raw_ticket)
        mapped["code"] = mapped.get("code") or code
        ticket: Ticket = parse_model(Ticket, {**mapped, "user_id": user_id, "event_id": event["id"]})
        created = await self.tickets.insert(ticket.to_dict())

        await self._link(created["id"], user_id)
        logger.info(
            "Ticket added",
            extra={"ticket_id": created["id"], "user_id": user_id, "event_id": event["id"]},
        )
        return created

    async def relink(self, user_id: str) -> Optional[dict[str, Any]]:
        """
        Push every ticket owned by ``user_id`` that is missing from its list.

        Returns:
            The repaired user, populated, or None when the user does not exist.
        """

        user = await self.users.select_one({"id": user_id})
        if user is None:
            return None

        listed = {str(ticket_id) for ticket_id in user.get("tickets") or []}
        owned = await self.tickets.select_many({"user_id": user_id})
        missing = [ticket["id"] for ticket in owned if ticket["id"] not in listed]
        for ticket_id in missing:
            user = await self.users.push_ticket(user_id, ticket_id) or user
        if missing:
            logger.info("Tickets relinked", extra={"user_id": user_id, "ticket_ids": missing})
        return await self.users.populate(user)
