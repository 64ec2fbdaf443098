from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Tuple, Type, TypeVar

from blocktap.errors import ValidationError
from blocktap.types import CandlePeriod


E = TypeVar("E", bound=Enum)

# date AND time are required; a bare date is rejected
_ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


def require_id(value: Any, name: str = "market_id") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value


def parse_iso8601(value: Any, name: str) -> datetime:
    """Parse an ISO-8601 date-time; naive values are taken as UTC."""
    if not isinstance(value, str) or not _ISO_DATETIME_RE.match(value.strip()):
        raise ValidationError(f"{name} must be an ISO-8601 date-time, got {value!r}")
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an ISO-8601 date-time, got {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def validate_range(start: Any, end: Any) -> Tuple[datetime, datetime]:
    start_dt = parse_iso8601(start, "start")
    end_dt = parse_iso8601(end, "end")
    if end_dt <= start_dt:
        raise ValidationError(f"end ({end}) must be later than start ({start})")
    return start_dt, end_dt


def coerce_enum(enum_cls: Type[E], value: Any, name: str) -> E:
    """Accept an enum member, its literal value or its member name."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if value == member.value or value.upper() == member.name.upper():
                return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValidationError(f"{name} must be one of [{allowed}], got {value!r}")


def coerce_optional_enum(enum_cls: Type[E], value: Any, name: str) -> Optional[E]:
    if value is None:
        return None
    return coerce_enum(enum_cls, value, name)


def coerce_period(value: Any) -> CandlePeriod:
    # "1h" is accepted as shorthand for "_1h"
    if isinstance(value, str) and value and not value.startswith("_"):
        value = f"_{value}"
    return coerce_enum(CandlePeriod, value, "period")


def coerce_optional_bool(value: Any, name: str) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    raise ValidationError(f"{name} must be a bool, got {value!r}")


def coerce_optional_str(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{name} must be a non-empty string, got {value!r}")
    return value
