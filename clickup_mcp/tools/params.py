from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ValidationError


def require(arguments: Dict[str, Any], field: str) -> Any:
    value = arguments.get(field)
    if value is None or value == "":
        raise ValidationError(f"Missing required field '{field}'")
    return value


def require_list(arguments: Dict[str, Any], field: str) -> List[Any]:
    value = arguments.get(field)
    if not isinstance(value, list) or not value:
        raise ValidationError(f"Field '{field}' must be a non-empty array")
    return value


def require_any(arguments: Dict[str, Any], *fields: str) -> None:
    if not any(arguments.get(field) not in (None, "") for field in fields):
        joined = "' or '".join(fields)
        raise ValidationError(f"Either '{joined}' is required")


def pick(arguments: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Copy the fields that were actually supplied."""
    return {field: arguments[field] for field in fields if arguments.get(field) is not None}


def as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def as_int(arguments: Dict[str, Any], field: str) -> Optional[int]:
    value = arguments.get(field)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Field '{field}' must be an integer") from e


def to_timestamp_ms(value: Any, field: str) -> Optional[int]:
    """
    Accept a Unix timestamp in milliseconds or an ISO 8601 string.
    Naive ISO values are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Field '{field}' must be a timestamp")
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(
            f"Field '{field}' must be a millisecond timestamp or an ISO 8601 date"
        ) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)
