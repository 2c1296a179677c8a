"""User model with ticket references."""
import re
from email.utils import parseaddr
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

CPF_LENGTH = 11
CPF_SEPARATORS = re.compile(r"[.\-\s]")


def normalize_email(value: str) -> str:
    """
    Normalize and validate email to lowercase.

    Args:
        value: Input email string.

    Returns:
        Lowercased, stripped email string if valid.

    Raises:
        PydanticCustomError: ``email_format`` if the address is malformed.
    """
    lowered = value.strip().lower()
    parsed = parseaddr(lowered)[1]
    if "@" not in parsed or parsed != lowered:
        raise PydanticCustomError("email_format", "Invalid email address format.")
    return lowered


def strip_cpf(value: str) -> str:
    return CPF_SEPARATORS.sub("", value)


def _cpf_digits_match(digits: str) -> bool:
    for position in (9, 10):
        total = sum(int(digits[i]) * (position + 1 - i) for i in range(position))
        if (total * 10) % 11 % 10 != int(digits[position]):
            return False
    return True


def normalize_cpf(value: str) -> str:
    """
    Strip punctuation from a CPF and verify its two check digits.

    Raises:
        PydanticCustomError: ``cpf_format`` for anything that is not eleven
            digits, ``cpf_checksum`` when the check digits do not match.
    """
    digits = strip_cpf(value)
    if len(digits) != CPF_LENGTH or not digits.isdigit():
        raise PydanticCustomError("cpf_format", "CPF must contain 11 digits.")
    # repeated-digit sequences pass the checksum but are never issued
    if digits == digits[0] * CPF_LENGTH or not _cpf_digits_match(digits):
        raise PydanticCustomError("cpf_checksum", "CPF check digits do not match.")
    return digits


class User(BaseModel):
    """Platform user identified by email and cpf."""

    model_config = ConfigDict(extra="forbid")

    id: UUID = Field(default_factory=uuid4, frozen=True)
    email: str
    cpf: str
    ida: Optional[str] = None
    name: Optional[str] = None
    phone_number: Optional[str] = None
    tickets: list[UUID] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("cpf")
    @classmethod
    def cpf_digits(cls, value: str) -> str:
        return normalize_cpf(value)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "ida": self.ida,
            "name": self.name,
            "email": self.email,
            "cpf": self.cpf,
            "phone_number": self.phone_number,
            "tickets": [str(ticket) for ticket in self.tickets],
            }


class UserFields(BaseModel):
    """Payload accepted when updating an existing user."""

    model_config = ConfigDict(extra="forbid")

    ida: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    cpf: Optional[str] = None
    phone_number: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value is not None else None

    @field_validator("cpf")
    @classmethod
    def cpf_digits(cls, value: Optional[str]) -> Optional[str]:
        return normalize_cpf(value) if value is not None else None
