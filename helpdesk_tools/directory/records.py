"""Field access on opaque directory records.

Records come back from PowerShell as JSON objects; a multi-valued attribute
may arrive as a one-element list. Every field goes through the same
`Value` model so display code never has to care which shape it got.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

MULTI_VALUE_SEPARATOR = "; "


@dataclass(frozen=True)
class Scalar:
    text: str


@dataclass(frozen=True)
class MultiValue:
    values: Tuple[str, ...]


Value = Union[Scalar, MultiValue]


def _text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "True" if raw else "False"
    return str(raw)


def to_value(raw: Any) -> Value:
    if isinstance(raw, (list, tuple, set, frozenset)):
        return MultiValue(tuple(_text(item) for item in raw))
    return Scalar(_text(raw))


def get_field(record: Any, name: str) -> Optional[Value]:
    """Return field *name* of *record*, or None when it has no such field."""
    if isinstance(record, Mapping):
        if name in record:
            return to_value(record[name])
        lowered = name.lower()
        for key, raw in record.items():
            if isinstance(key, str) and key.lower() == lowered:
                return to_value(raw)
        return None
    if hasattr(record, name):
        return to_value(getattr(record, name))
    return None


def render_value(value: Optional[Value]) -> str:
    if value is None:
        return ""
    if isinstance(value, Scalar):
        return value.text
    if len(value.values) == 1:
        return value.values[0]
    return MULTI_VALUE_SEPARATOR.join(value.values)


def field_text(record: Any, name: str) -> str:
    return render_value(get_field(record, name))
