"""Shared record shapes and field coercion helpers for record-store data."""

from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Record(BaseModel):
    """A raw row as returned by the record store: id + untyped field bag."""

    id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    created_time: str | None = None


class Attachment(BaseModel):
    url: str
    width: int | None = None
    height: int | None = None
    filename: str | None = None


# ── Field coercion ───────────────────────────────────────────

def link_ids(value: Any) -> list[str]:
    """Linked-record fields arrive as ``["rec..."]`` or ``[{"id": "rec..."}]``."""
    if not isinstance(value, list):
        return []
    ids: list[str] = []
    for item in value:
        if isinstance(item, str):
            ids.append(item)
        elif isinstance(item, dict) and isinstance(item.get("id"), str):
            ids.append(item["id"])
    return ids


def attachments(value: Any) -> list[Attachment]:
    if not isinstance(value, list):
        return []
    return [
        Attachment(
            url=item["url"],
            width=item.get("width"),
            height=item.get("height"),
            filename=item.get("filename"),
        )
        for item in value
        if isinstance(item, dict) and item.get("url")
    ]


def text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        # Lookup fields come back as single-item lists
        value = value[0] if value else None
        if value is None:
            return None
    value = str(value).strip()
    return value or None


def flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "checked")
    return bool(value)


def number(value: Any, default: int | None = None) -> int | None:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return default
    return default


def parse_date(value: Any) -> datetime | None:
    """Parse an ISO date or datetime string into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        raw = value.strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
