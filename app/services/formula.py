"""Boolean filter expressions over record fields.

Each expression renders to an Airtable ``filterByFormula`` string for
server-side filtering and can also be evaluated against a field bag, which is
what the view and full-scan strategies use client-side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.models.base import flag, link_ids


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _field(name: str) -> str:
    return "{" + name + "}"


class Expr:
    def to_formula(self) -> str:
        raise NotImplementedError

    def matches(self, record_id: str, fields: dict[str, Any]) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Eq(Expr):
    """Scalar field equality (string comparison)."""
    field: str
    value: str

    def to_formula(self) -> str:
        return f"{_field(self.field)} = {_quote(self.value)}"

    def matches(self, record_id: str, fields: dict[str, Any]) -> bool:
        actual = fields.get(self.field)
        if isinstance(actual, list):
            actual = actual[0] if actual else None
        return actual is not None and str(actual) == self.value


@dataclass(frozen=True)
class IsTrue(Expr):
    """Checkbox field is ticked."""
    field: str

    def to_formula(self) -> str:
        return f"{_field(self.field)} = TRUE()"

    def matches(self, record_id: str, fields: dict[str, Any]) -> bool:
        return flag(fields.get(self.field))


@dataclass(frozen=True)
class LinkContains(Expr):
    """Multi-value link field contains a record id.

    The remote formula language renders linked records by their primary
    field, not their id, so the server-side form can silently match nothing.
    Client-side evaluation is exact.
    """
    field: str
    record_id: str

    def to_formula(self) -> str:
        return f"FIND({_quote(self.record_id)}, ARRAYJOIN({_field(self.field)}))"

    def matches(self, record_id: str, fields: dict[str, Any]) -> bool:
        return self.record_id in link_ids(fields.get(self.field))


@dataclass(frozen=True)
class RecordIdIn(Expr):
    ids: tuple[str, ...]

    def to_formula(self) -> str:
        if not self.ids:
            return "FALSE()"
        return "OR(" + ", ".join(f"RECORD_ID() = {_quote(i)}" for i in self.ids) + ")"

    def matches(self, record_id: str, fields: dict[str, Any]) -> bool:
        return record_id in self.ids


@dataclass(frozen=True)
class And(Expr):
    parts: tuple[Expr, ...]

    def to_formula(self) -> str:
        if len(self.parts) == 1:
            return self.parts[0].to_formula()
        return "AND(" + ", ".join(p.to_formula() for p in self.parts) + ")"

    def matches(self, record_id: str, fields: dict[str, Any]) -> bool:
        return all(p.matches(record_id, fields) for p in self.parts)


@dataclass(frozen=True)
class Or(Expr):
    parts: tuple[Expr, ...]

    def to_formula(self) -> str:
        if len(self.parts) == 1:
            return self.parts[0].to_formula()
        return "OR(" + ", ".join(p.to_formula() for p in self.parts) + ")"

    def matches(self, record_id: str, fields: dict[str, Any]) -> bool:
        return any(p.matches(record_id, fields) for p in self.parts)


def all_of(*parts: Expr | None) -> Expr | None:
    """AND together the non-None parts; None when nothing is left."""
    kept = tuple(p for p in parts if p is not None)
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0]
    return And(kept)


def any_of(*parts: Expr | None) -> Expr | None:
    kept = tuple(p for p in parts if p is not None)
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0]
    return Or(kept)
