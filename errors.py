"""Error types shared by the stores, the Sympla client and the resolvers."""

from typing import Sequence


class TicketingError(Exception):
    """Base class for errors that map to a field-addressable GraphQL error."""

    code = "BAD_USER_INPUT"

    @property
    def invalid_args(self) -> list[str]:
        return []


class ValidationFailure(TicketingError):
    """An input value broke a field rule."""

    def __init__(self, rule: str, attribute: str) -> None:
        self.rule = rule
        self.attribute = attribute
        super().__init__(f"Validation error, {rule} value in {attribute} key")

    @property
    def invalid_args(self) -> list[str]:
        return [self.attribute]


class DuplicateKeyError(TicketingError):
    """A unique constraint rejected a write."""

    def __init__(self, fields: Sequence[str]) -> None:
        self.fields = list(fields)
        super().__init__(f"Duplicated in [{','.join(self.fields)}] keys")

    @property
    def invalid_args(self) -> list[str]:
        return self.fields


class ExternalLookupError(TicketingError):
    """The provider call or a local owner or event lookup failed."""

    def __init__(self, kind: str, detail: str, attribute: str) -> None:
        self.kind = kind
        self.detail = detail
        self.attribute = attribute
        super().__init__(f"{kind} error, {detail} to get {attribute}")

    @property
    def invalid_args(self) -> list[str]:
        return [self.attribute]


class TicketLinkError(TicketingError):
    """A ticket was stored but could not be pushed onto its owner."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, ticket_id: str, user_id: str, compensated: bool) -> None:
        self.ticket_id = ticket_id
        self.user_id = user_id
        self.compensated = compensated
        state = "removed" if compensated else "left unlinked"
        super().__init__(f"Unable to link ticket {ticket_id} to user {user_id}; ticket {state}")

    @property
    def invalid_args(self) -> list[str]:
        return ["user_id"]
