"""Host normalization and development port aliases."""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.core.config import Settings

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://")
_WWW_RE = re.compile(r"^www\.")
_TRAILING_SLASH_RE = re.compile(r"/+$")
_PORT_RE = re.compile(r":(\d+)$")


def normalize_domain(raw: str, development: bool = False) -> str:
    """Canonicalize a host: lower-case, no scheme, no ``www.``, no trailing slash.

    The port is kept in development so that sites on different local ports
    resolve to different tenants; in production it is dropped.
    """
    host = (raw or "").lower()
    previous = None
    # Every step only shortens the string, so this reaches a fixed point.
    while host != previous:
        previous = host
        host = _SCHEME_RE.sub("", host.strip())
        host = _WWW_RE.sub("", host)
        host = _TRAILING_SLASH_RE.sub("", host)
        if not development:
            host = _PORT_RE.sub("", host)
    return host


def port_to_tenant_alias(host: str, aliases: dict[str, str]) -> str | None:
    """Return the tenant alias configured for the host's port, if any."""
    match = _PORT_RE.search(_TRAILING_SLASH_RE.sub("", (host or "").strip()))
    if match is None:
        return None
    return aliases.get(match.group(1))


@dataclass(frozen=True)
class DomainMatch:
    """What the resolver compares tenant domains against."""
    host: str
    alias: str | None = None
    development: bool = False

    @property
    def cache_key(self) -> tuple[str, str, str]:
        return ("tenant", self.host, self.alias or "")

    def matches(self, domain: str | None, local_domain: str | None) -> bool:
        canonical = normalize_domain(domain or "", self.development) if domain else ""
        local = normalize_domain(local_domain or "", True) if local_domain else ""
        if self.host and self.host in (canonical, local):
            return True
        return bool(self.alias) and local == self.alias


def domain_candidates(raw_host: str, settings: Settings) -> DomainMatch:
    development = settings.is_development
    alias = port_to_tenant_alias(raw_host, settings.port_aliases) if development else None
    return DomainMatch(
        host=normalize_domain(raw_host, development),
        alias=alias,
        development=development,
    )
