"""Value formatting shared by the report sections.

The informed-value rule lives here: a value only counts as filled in when,
after trimming, it is non-empty and is not the "Não informado" placeholder
the assembler itself emits (with or without a trailing period).
"""

import json
from datetime import date
from typing import Any

from pydantic import BaseModel

NOT_INFORMED = "Não informado"

_SENTINEL = NOT_INFORMED.lower()


def is_informed(value: Any) -> bool:
    """Check whether a value carries real content."""
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, BaseModel):
        return any(is_informed(v) for v in value.model_dump(exclude_none=True).values())
    if isinstance(value, dict):
        return any(is_informed(v) for v in value.values())
    if isinstance(value, (list, tuple, set)):
        return any(is_informed(v) for v in value)
    text = str(value).strip()
    if not text:
        return False
    return text.lower().rstrip(".").strip() != _SENTINEL


def clean(value: Any) -> str | None:
    """Return the trimmed text of an informed value, else None."""
    if not is_informed(value):
        return None
    if isinstance(value, (list, tuple, set, dict, BaseModel)):
        return inline(value)
    return str(value).strip()


def or_not_informed(text: str | None) -> str:
    return text if text and text.strip() else NOT_INFORMED


def format_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return f"{value:g}" if isinstance(value, float) else str(value)


def format_date(value: Any) -> str:
    """Render an ISO date as dd/mm/yyyy; unparseable text is kept as-is."""
    if not is_informed(value):
        return ""
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10]).strftime("%d/%m/%Y")
    except ValueError:
        return text


def format_time(value: Any) -> str:
    """Keep only HH:MM of a time value."""
    if not is_informed(value):
        return ""
    text = str(value).strip()
    parts = text.split(":")
    if len(parts) >= 2:
        return f"{parts[0]}:{parts[1]}"
    return text


def json_dump(value: Any) -> str:
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_none=True)
    return json.dumps(value, ensure_ascii=False, default=str, sort_keys=True)


def inline(value: Any) -> str:
    """Render a value on a single line."""
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_none=True)
    if isinstance(value, dict):
        return flatten(value) or json_dump(value)
    if isinstance(value, (list, tuple, set)):
        return ", ".join(inline(v) for v in value if is_informed(v))
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    if isinstance(value, float):
        return format_number(value)
    return str(value).strip()


def flatten(item: dict[str, Any]) -> str:
    """Flatten a dict into ``key: value | key: value`` segments."""
    segments = [
        f"{key}: {inline(value)}"
        for key, value in item.items()
        if is_informed(value)
    ]
    return " | ".join(segments)


def format_value(value: Any) -> str:
    """Serialize a structured field, one line per entry.

    Dicts yield ``key: value`` lines, lists yield one line per item with
    nested dicts flattened, and empty or placeholder values yield "".
    """
    if value is None:
        return ""
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_none=True)
    if isinstance(value, dict):
        return "\n".join(
            f"{key}: {inline(item)}"
            for key, item in value.items()
            if is_informed(item)
        )
    if isinstance(value, (list, tuple)):
        return "\n".join(inline(item) for item in value if is_informed(item))
    return clean(value) or ""
