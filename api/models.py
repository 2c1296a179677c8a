"""Response envelope for the health endpoint."""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Envelope for simple string responses."""

    status: int
    message: str
