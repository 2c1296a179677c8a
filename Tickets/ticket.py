from uuid import UUID, uuid4
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field


class Ticket(BaseModel):
    """A provider ticket owned by one user for one event."""

    id : UUID = Field(default_factory=lambda: uuid4(), frozen=True)
    user_id : UUID
    event_id : UUID
    code : str
    sympla_id : Optional[str] = None
    order_id : Optional[str] = None
    qr_code : Optional[str] = None
    ticket_name : Optional[str] = None
    name : Optional[str] = None
    email : Optional[str] = None
    seat : Optional[str] = None
    checked_in : bool = False
    created_at : datetime = Field(default_factory=lambda: datetime.now(timezone.utc), frozen=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "event_id": str(self.event_id),
            "code": self.code,
            "sympla_id": self.sympla_id,
            "order_id": self.order_id,
            "qr_code": self.qr_code,
            "ticket_name": self.ticket_name,
            "name": self.name,
            "email": self.email,
            "seat": self.seat,
            "checked_in": self.checked_in,
            "created_at": self.created_at.isoformat(),
        }
