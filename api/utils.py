from uuid import UUID
from logging import Logger
from typing import Any, Literal, Optional

from errors import ValidationFailure

entity_type : Literal['user', 'event', 'activity', 'ticket', 'undefined_entity'] = 'undefined_entity'


def _parse_id(
        id: str,
        logger: Logger,
        entity: Literal['user', 'event', 'activity', 'ticket', 'undefined_entity'] = entity_type,
        attribute: str = "id",
    ) -> str:
    """Validate and normalize a GUID identifier for any entity among:
    - user
    - event
    - activity
    - ticket
    - undefined entity.
    """

    try:
        return str(UUID(str(id)))
    except ValueError as exc:
        logger.warning(f"Invalid GUID supplied for {entity}_id", extra={f"{entity}_id": id})
        raise ValidationFailure(rule="uuid", attribute=attribute) from exc


def _parse_optional_id(id: Optional[str], logger: Logger, entity: Any = entity_type, attribute: str = "id") -> Optional[str]:
    return _parse_id(id, logger, entity, attribute) if id is not None else None


def _filters(payload: Optional[dict[str, Any]], logger: Logger, id_fields: tuple[str, ...] = ("id",)) -> dict[str, Any]:
    """Drop null filter values and normalize the id-valued ones."""

    filters = {key: value for key, value in (payload or {}).items() if value is not None}
    for field in id_fields:
        if field in filters:
            filters[field] = _parse_id(filters[field], logger, attribute=field)
    return filters


def services(info: Any) -> Any:
    return info.context["services"]
