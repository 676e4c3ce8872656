"""
Input coercion for lifecycle commands.

Commands accept enum members or their string values, ISO timestamps or
datetimes; anything malformed raises ValidationError before the command
touches the database.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from facilityops.errors import ValidationError


def parse_enum(enum_cls, value, field_name: str, allow_none: bool = False):
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}", {'field': field_name, 'value': value})


def parse_datetime(value, field_name: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into a naive UTC datetime (None stays None)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f"{field_name} must be an ISO 8601 timestamp", {'field': field_name, 'value': value})
    else:
        raise ValidationError(f"{field_name} must be an ISO 8601 timestamp", {'field': field_name})

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def require_text(value, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required", {'field': field_name})
    return value.strip()


def optional_text(value, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", {'field': field_name})
    return value


def require_int(value, field_name: str, minimum: Optional[int] = None) -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be an integer", {'field': field_name})
        try:
            value = int(value.strip(), 10)
        except ValueError:
            raise ValidationError(f"{field_name} must be an integer", {'field': field_name, 'value': value})
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field_name} must be at least {minimum}", {'field': field_name, 'value': value})
    return value


def optional_int(value, field_name: str, minimum: Optional[int] = None) -> Optional[int]:
    if value is None:
        return None
    return require_int(value, field_name, minimum=minimum)


def require_bool(value, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field_name} must be true or false", {'field': field_name})
    return value


def reject_unknown_fields(changes: dict, allowed: Iterable[str]):
    unknown = sorted(set(changes) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}", {'fields': unknown})


def serializable(value: Any):
    """Enum -> value, datetime -> ISO string; used for event metadata."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value
