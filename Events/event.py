'''
Event and Activity models for the Events module.
'''
from uuid import UUID, uuid4
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, model_validator, Field
from utils import validate_window


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Event(BaseModel):

    model_config = ConfigDict(extra="forbid")

    id : UUID = Field(default_factory=lambda: uuid4(), frozen=True)
    sympla_id : str
    name : str
    description : Optional[str] = None
    place : Optional[str] = None
    starts_at : Optional[datetime] = None
    ends_at : Optional[datetime] = None

    @model_validator(mode="after")
    def validate_structure(self):
        # enforce chronological consistency
        validate_window(self.starts_at, self.ends_at)
        return self

    def to_dict(self) -> dict[str, Optional[str]]:
        """
        Serialize the event into a dictionary.

        Returns:
            dict[str, Optional[str]]: Mapping with stringified identifiers and timestamps.
        """
        return {
            "id": str(self.id),
            "sympla_id": self.sympla_id,
            "name": self.name,
            "description": self.description,
            "place": self.place,
            "starts_at": _isoformat(self.starts_at),
            "ends_at": _isoformat(self.ends_at),
        }


class EventFields(BaseModel):
    """Payload accepted when updating an existing event."""

    model_config = ConfigDict(extra="forbid")

    sympla_id : Optional[str] = None
    name : Optional[str] = None
    description : Optional[str] = None
    place : Optional[str] = None
    starts_at : Optional[datetime] = None
    ends_at : Optional[datetime] = None

    @model_validator(mode="after")
    def validate_structure(self):
        validate_window(self.starts_at, self.ends_at)
        return self


class Activity(BaseModel):

    model_config = ConfigDict(extra="forbid")

    id : UUID = Field(default_factory=lambda: uuid4(), frozen=True)
    event_id : UUID
    name : str
    description : Optional[str] = None
    speaker : Optional[str] = None
    place : Optional[str] = None
    starts_at : Optional[datetime] = None
    ends_at : Optional[datetime] = None

    @model_validator(mode="after")
    def validate_structure(self):
        validate_window(self.starts_at, self.ends_at)
        return self

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "id": str(self.id),
            "event_id": str(self.event_id),
            "name": self.name,
            "description": self.description,
            "speaker": self.speaker,
            "place": self.place,
            "starts_at": _isoformat(self.starts_at),
            "ends_at": _isoformat(self.ends_at),
        }


class ActivityFields(BaseModel):
    """Payload accepted when updating an existing activity."""

    model_config = ConfigDict(extra="forbid")

    name : Optional[str] = None
    description : Optional[str] = None
    speaker : Optional[str] = None
    place : Optional[str] = None
    starts_at : Optional[datetime] = None
    ends_at : Optional[datetime] = None

    @model_validator(mode="after")
    def validate_structure(self):
        validate_window(self.starts_at, self.ends_at)
        return self
