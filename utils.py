from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from errors import ValidationFailure


def validate_timestamps(date1: datetime, date2: datetime):
    '''Validate that date2 is greater than date1.'''
    if date2 < date1:
        raise ValueError("date2 must be greater than or equal to date1")


def validate_window(starts_at: Optional[datetime], ends_at: Optional[datetime]):
    '''Validate an optional start/end pair, skipping open-ended windows.'''
    if starts_at is not None and ends_at is not None:
        validate_timestamps(starts_at, ends_at)


def normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    '''Return a copy of a stored record exposing a string ``id``.'''
    normalized = dict(record)
    if normalized.get("id") is not None:
        normalized["id"] = str(normalized["id"])
    return normalized


# pydantic error types renamed to the rule names reported to clients
RULE_NAMES = {
    "missing": "required",
    "string_type": "type",
    "extra_forbidden": "unknown",
}


def parse_model(model: type[BaseModel], candidate: dict[str, Any]) -> Any:
    '''Validate ``candidate`` against ``model``, failing on its first broken rule.'''
    try:
        return model.model_validate(candidate)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = error.get("loc") or (model.__name__.lower(),)
        rule = RULE_NAMES.get(error["type"], error["type"])
        raise ValidationFailure(rule=rule, attribute=str(location[0])) from exc
