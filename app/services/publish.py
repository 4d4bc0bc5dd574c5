"""Publish/redirect resolution for a single content item.

Evaluation order is fixed: Redirect, then NotFound, then Render. A redirect
wins even when the item is unpublished.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from app.models.content import ContentBase

T = TypeVar("T", bound=ContentBase)

REDIRECT_STATUS = "redirect"


class PublishState(StrEnum):
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"
    RENDER = "render"


@dataclass(frozen=True)
class Redirect:
    target: str  # as stored on the item
    location: str  # where to send the client
    state: PublishState = PublishState.REDIRECT


@dataclass(frozen=True)
class NotFound:
    state: PublishState = PublishState.NOT_FOUND


@dataclass(frozen=True)
class Render(Generic[T]):
    item: T
    state: PublishState = PublishState.RENDER


def is_redirect(status: str | None, target: str | None) -> bool:
    """``Redirect status`` must say "Redirect" and the target must be non-empty."""
    return (
        (status or "").strip().lower() == REDIRECT_STATUS
        and bool((target or "").strip())
    )


def resolve_redirect_target(target: str, content_prefix: str = "/blog") -> str:
    """Absolute URLs and absolute paths pass through; bare slugs become content paths."""
    target = target.strip()
    if target.startswith(("http://", "https://", "/")):
        return target
    return f"{content_prefix.rstrip('/')}/{target}"


def evaluate(
    item: T | None, content_prefix: str = "/blog"
) -> Redirect | NotFound | Render[T]:
    if item is None:
        return NotFound()
    if is_redirect(item.redirect_status, item.redirect_target):
        target = (item.redirect_target or "").strip()
        return Redirect(target=target, location=resolve_redirect_target(target, content_prefix))
    if not item.published:
        return NotFound()
    return Render(item)
