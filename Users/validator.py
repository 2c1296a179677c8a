"""Field-rule gate applied to user payloads before they reach the store."""

from typing import Any

from Users.user import User, UserFields, strip_cpf
from utils import parse_model


def parse_user(candidate: dict[str, Any]) -> User:
    """
    Validate a user payload and return the normalized model.

    Raises:
        ValidationFailure: for the first rule the payload breaks, carrying the
            rule name (``required``, ``email_format``, ``cpf_checksum``...) and
            the attribute it applies to.
    """
    return parse_model(User, candidate)


def validate_user(candidate: dict[str, Any]) -> None:
    """Raise ValidationFailure if ``candidate`` is not an acceptable new user."""
    parse_user(candidate)


def validate_user_update(changes: dict[str, Any]) -> dict[str, Any]:
    """
    Validate the fields present in a partial update.

    Returns:
        The normalized changes, without unset or null fields.
    """
    fields: UserFields = parse_model(UserFields, changes)
    return fields.model_dump(exclude_unset=True, exclude_none=True)


def normalize_lookup(selectors: dict[str, Any]) -> dict[str, Any]:
    """Bring email and cpf lookups to the form users are stored in."""
    normalized = dict(selectors)
    if isinstance(normalized.get("email"), str):
        normalized["email"] = normalized["email"].strip().lower()
    if isinstance(normalized.get("cpf"), str):
        normalized["cpf"] = strip_cpf(normalized["cpf"])
    return normalized
