"""Sympla ticket lookups over the public API, via httpx."""

import logging
from typing import Any, Optional

import httpx

from config import SYMPLA_DEFAULT_URL
from errors import ExternalLookupError

logger = logging.getLogger(__name__)

PROVIDER = "Sympla"
TICKET_ATTRIBUTE = "ticket"


def _status_detail(status_code: int) -> str:
    if status_code == httpx.codes.NOT_FOUND:
        return "not found"
    if status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
        return "unauthorized"
    return f"status {status_code}"


class SymplaClient:
    """
    Client for the Sympla participants API.

    The ``httpx.AsyncClient`` is owned by the caller so a single connection
    pool is shared across requests and closed with the application.
    """

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        base_url: str = SYMPLA_DEFAULT_URL,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._http = http_client

    async def get_ticket(self, event_id: str, ticket_number: str) -> dict[str, Any]:
        """
        Fetch a participant ticket by event and ticket number.

        Args:
            event_id: Sympla event identifier.
            ticket_number: Ticket code printed on the ticket.

        Returns:
            The ``data`` object of the Sympla response.

        Raises:
            ExternalLookupError: on transport failures, non-2xx responses or an
                empty payload. ``attribute`` is always ``ticket``.
        """

        url = f"{self.base_url}/events/{event_id}/participants/ticketNumber/{ticket_number}"
        log_context = {"event_id": event_id, "ticket_number": ticket_number}

        try:
            response = await self._http.get(
                url, headers={"s_token": self.api_key, "Accept": "application/json"}
            )
        except httpx.HTTPError as exc:
            logger.warning("Sympla request failed", extra={**log_context, "error": str(exc)})
            raise ExternalLookupError("Network", "unreachable", TICKET_ATTRIBUTE) from exc

        if response.is_error:
            logger.info(
                "Sympla rejected ticket lookup",
                extra={**log_context, "status_code": response.status_code},
            )
            raise ExternalLookupError(PROVIDER, _status_detail(response.status_code), TICKET_ATTRIBUTE)

        try:
            body = response.json()
        except ValueError as exc:
            raise ExternalLookupError(PROVIDER, "invalid response", TICKET_ATTRIBUTE) from exc
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict) or not data:
            raise ExternalLookupError(PROVIDER, "empty response", TICKET_ATTRIBUTE)

        logger.debug("Sympla ticket retrieved", extra=log_context)
        return data

    @staticmethod
    def map_ticket(payload: dict[str, Any]) -> dict[str, Any]:
        """Translate a Sympla participant payload into local ticket fields."""

        full_name = " ".join(
            part for part in (payload.get("first_name"), payload.get("last_name")) if part
        )
        checkins = payload.get("checkin") or []
        sympla_id: Optional[Any] = payload.get("id")
        order_id: Optional[Any] = payload.get("order_id")

        return {
            "sympla_id": str(sympla_id) if sympla_id is not None else None,
            "order_id": str(order_id) if order_id is not None else None,
            "code": payload.get("ticket_number"),
            "qr_code": payload.get("ticket_num_qr_code"),
            "ticket_name": payload.get("ticket_name"),
            "name": full_name or None,
            "email": payload.get("email"),
            "seat": payload.get("marked_seat_name") or payload.get("sector_name"),
            "checked_in": any(bool(entry.get("check_in")) for entry in checkins),
        }
