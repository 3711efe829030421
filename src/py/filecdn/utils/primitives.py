from typing import Any
from datetime import date, datetime, timezone
from dataclasses import is_dataclass
from pathlib import Path
from enum import Enum


TLiteral = bool | int | float | str | bytes
TComposite = (
    list[TLiteral] | dict[TLiteral, TLiteral] | set[TLiteral] | tuple[TLiteral, ...]
)
TComposite2 = (
    list[TLiteral | TComposite]
    | dict[TLiteral, TLiteral | TComposite]
    | tuple[TLiteral | TComposite, ...]
)
TPrimitive = TLiteral | TComposite | TComposite2


def isoformat(value: datetime | date | float) -> str:
    """Formats the given timestamp as an ISO-8601 UTC string with
    millisecond precision, like `2024-01-31T12:00:00.000Z`."""
    if isinstance(value, (int, float)):
        value = datetime.fromtimestamp(value, timezone.utc)
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def asPrimitive(value: Any, *, currentDepth: int = 0) -> Any:
    """Converts the given value to a primitive value, that can be converted
    to JSON"""
    if value is None or type(value) in (bool, float, int, str):
        return value
    elif isinstance(value, tuple) and hasattr(value, "_fields"):
        # NamedTuples can define their own `asPrimitive` to control the
        # serialized shape.
        f = getattr(type(value), "asPrimitive", None)
        return (
            f(value)
            if f
            else {
                k: asPrimitive(getattr(value, k), currentDepth=currentDepth + 1)
                for k in value._fields
            }
        )
    elif isinstance(value, list) or isinstance(value, tuple) or isinstance(value, set):
        return [asPrimitive(v, currentDepth=currentDepth + 1) for v in value]
    elif is_dataclass(value):
        return {
            k: asPrimitive(getattr(value, k), currentDepth=currentDepth + 1)
            for k in value.__annotations__
        }
    elif isinstance(value, Enum):
        return asPrimitive(value.value)
    elif isinstance(value, dict):
        return {
            asPrimitive(k): asPrimitive(v, currentDepth=currentDepth + 1)
            for k, v in value.items()
        }
    elif isinstance(value, Path):
        return str(value)
    elif isinstance(value, datetime) or isinstance(value, date):
        return isoformat(value)
    else:
        return value


# EOF
