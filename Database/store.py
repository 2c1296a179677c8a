'''
Supabase-backed stores for the ticketing collections.

Every call to the synchronous Supabase client runs in the threadpool so the
resolvers stay non-blocking. Rows come back normalized with a string ``id``.
'''

import logging
import re
from typing import Any, Callable, Iterable, Optional

from fastapi.concurrency import run_in_threadpool
from postgrest.exceptions import APIError

from errors import DuplicateKeyError, ValidationFailure
from Users.validator import normalize_lookup, parse_user, validate_user_update
from utils import normalize_record

logger = logging.getLogger(__name__)

USERS_TABLE_NAME = "users"
EVENTS_TABLE_NAME = "events"
TICKETS_TABLE_NAME = "tickets"
ACTIVITIES_TABLE_NAME = "activities"
PUSH_TICKET_FUNCTION = "push_user_ticket"

UNIQUE_VIOLATION_CODE = "23505"
USER_SELECTORS = ("id", "ida", "email", "cpf")

_KEY_DETAIL = re.compile(r"Key \((?P<columns>[^)]*)\)=")
_CONSTRAINT_NAME = re.compile(r'unique constraint "(?P<name>[^"]+)"')


def _is_unique_violation(error: Exception) -> bool:
    """
    Determine whether an API error represents a uniqueness constraint violation.

    Args:
        error: Exception raised by the persistence layer.

    Returns:
        True if the error indicates a duplicate/unique constraint conflict.
    """

    if getattr(error, "code", None) == UNIQUE_VIOLATION_CODE:
        return True

    message = str(getattr(error, "message", None) or error).lower()
    return "duplicate key value" in message or "unique constraint" in message


def duplicate_fields(error: Exception) -> list[str]:
    """
    Extract the offending column names from a unique violation.

    Postgres reports them in the detail line (``Key (event_id, code)=(...)
    already exists.``); the constraint name is the fallback.
    """

    match = _KEY_DETAIL.search(str(getattr(error, "details", None) or ""))
    if match:
        return [column.strip().strip('"') for column in match.group("columns").split(",")]

    match = _CONSTRAINT_NAME.search(str(getattr(error, "message", None) or error))
    if match:
        return [match.group("name")]
    return []


def _quote(value: Any) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _or_filter(conditions: dict[str, Any]) -> str:
    return ",".join(f"{column}.eq.{_quote(value)}" for column, value in conditions.items())


class Collection:
    """Filter-addressed create/find/update access to one table."""

    def __init__(self, db: Any, table: str) -> None:
        self._db = db
        self.table = table

    async def _execute(self, build: Callable[[Any], Any]) -> list[dict[str, Any]]:
        result = await run_in_threadpool(lambda: build(self._db.table(self.table)).execute())
        return list(result.data or [])

    def _duplicate_or_raise(self, exc: APIError, action: str) -> None:
        if _is_unique_violation(exc):
            fields = duplicate_fields(exc)
            logger.info(
                "Write blocked by unique constraint",
                extra={"table": self.table, "action": action, "fields": fields},
            )
            raise DuplicateKeyError(fields) from exc
        logger.exception(
            "Failed to write record",
            extra={"table": self.table, "action": action, "error_code": getattr(exc, "code", None)},
        )

    async def insert(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one record.

        Raises:
            DuplicateKeyError: when a unique constraint rejects the row.
            APIError: for any other store failure, unmodified.
        """

        try:
            rows = await self._execute(lambda table: table.insert(payload))
        except APIError as exc:
            self._duplicate_or_raise(exc, "insert")
            raise
        return normalize_record(rows[0] if rows else payload)

    async def select_many(
        self,
        filters: Optional[dict[str, Any]] = None,
        any_of: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        Select records matching every ``filters`` pair and, when given, at
        least one ``any_of`` pair. Results are ordered by id.
        """

        def build(table: Any) -> Any:
            query = table.select("*")
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            if any_of:
                query = query.or_(_or_filter(any_of))
            query = query.order("id")
            if limit is not None:
                query = query.limit(limit)
            return query

        rows = await self._execute(build)
        return [normalize_record(row) for row in rows]

    async def select_one(
        self,
        filters: Optional[dict[str, Any]] = None,
        any_of: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        rows = await self.select_many(filters, any_of=any_of, limit=1)
        return rows[0] if rows else None

    async def select_by_ids(self, ids: Iterable[Any]) -> list[dict[str, Any]]:
        """Fetch records by id, in the order given, skipping unknown ids."""

        wanted = [str(record_id) for record_id in ids]
        if not wanted:
            return []
        rows = await self._execute(lambda table: table.select("*").in_("id", wanted))
        by_id = {str(row["id"]): normalize_record(row) for row in rows}
        return [by_id[record_id] for record_id in wanted if record_id in by_id]

    async def update_by_id(self, record_id: Any, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Apply ``changes`` to one record; None when the id is unknown."""

        try:
            rows = await self._execute(
                lambda table: table.update(changes).eq("id", str(record_id))
            )
        except APIError as exc:
            self._duplicate_or_raise(exc, "update")
            raise
        return normalize_record(rows[0]) if rows else None

    async def delete_by_id(self, record_id: Any) -> bool:
        rows = await self._execute(lambda table: table.delete().eq("id", str(record_id)))
        return bool(rows)


async def populate_events(tickets: list[dict[str, Any]], events: Collection) -> list[dict[str, Any]]:
    """Attach each ticket's event record under ``event``."""

    found = await events.select_by_ids(
        dict.fromkeys(str(ticket["event_id"]) for ticket in tickets if ticket.get("event_id"))
    )
    by_id = {event["id"]: event for event in found}
    return [{**ticket, "event": by_id.get(str(ticket.get("event_id")))} for ticket in tickets]


class UserStore(Collection):
    """User gateway: validated writes and ticket/event population on reads."""

    def __init__(self, db: Any, tickets: Collection, events: Collection) -> None:
        super().__init__(db, USERS_TABLE_NAME)
        self.tickets = tickets
        self.events = events

    async def populate(self, user: dict[str, Any]) -> dict[str, Any]:
        tickets = await self.tickets.select_by_ids(user.get("tickets") or [])
        return {**user, "tickets": await populate_events(tickets, self.events)}

    async def create(self, user: dict[str, Any]) -> dict[str, Any]:
        """
        Validate and persist a new user.

        Raises:
            ValidationFailure: the payload broke a field rule; nothing is stored.
            DuplicateKeyError: email, cpf or ida is already taken.
        """

        candidate = parse_user(user)
        created = await self.insert(candidate.to_dict())
        logger.info("User created", extra={"user_id": created["id"]})
        return await self.populate(created)

    async def find_one(
        self,
        id: Optional[str] = None,
        ida: Optional[str] = None,
        email: Optional[str] = None,
        cpf: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        """Find the user matching any of the given identifiers, populated."""

        selectors = {
            key: value
            for key, value in zip(USER_SELECTORS, (id, ida, email, cpf))
            if value is not None
        }
        if not selectors:
            raise ValidationFailure(rule="required", attribute="selector")
        selectors = normalize_lookup(selectors)

        user = await self.select_one(any_of=selectors)
        if user is None:
            logger.info("User not found", extra={"selectors": list(selectors)})
            return None
        return await self.populate(user)

    async def find_all(self, filters: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        return await self.select_many(normalize_lookup(filters or {}))

    async def update(self, user: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Partially update a user by ``id`` and return it populated.

        Returns:
            The updated user, or None when no user has that id.
        """

        changes = dict(user)
        user_id = changes.pop("id", None)
        if not user_id:
            raise ValidationFailure(rule="required", attribute="id")

        updates = validate_user_update(changes)
        if not updates:
            return await self.find_one(id=user_id)

        updated = await self.update_by_id(user_id, updates)
        if updated is None:
            logger.info("User not found for update", extra={"user_id": user_id})
            return None
        logger.info("User updated", extra={"user_id": user_id, "fields": sorted(updates)})
        return await self.populate(updated)

    async def push_ticket(self, user_id: str, ticket_id: str) -> Optional[dict[str, Any]]:
        """
        Append ``ticket_id`` to the user's ticket list in a single statement.

        Returns:
            The updated user row, or None when the user does not exist.
        """

        result = await run_in_threadpool(
            lambda: self._db.rpc(
                PUSH_TICKET_FUNCTION, {"user_id": str(user_id), "ticket_id": str(ticket_id)}
            ).execute()
        )
        rows = result.data or []
        if isinstance(rows, dict):
            rows = [rows]
        return normalize_record(rows[0]) if rows else None
