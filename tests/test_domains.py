"""Unit tests for host normalization and development port aliases."""

import pytest

from app.core.config import Settings
from app.core.domains import (
    DomainMatch,
    domain_candidates,
    normalize_domain,
    port_to_tenant_alias,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("example.com", "example.com"),
        ("https://www.Example.com/", "example.com"),
        ("http://example.com:8080", "example.com"),
        ("WWW.EXAMPLE.COM//", "example.com"),
        ("https://www.www.example.com//:3000", "example.com"),
        ("", ""),
    ],
)
def test_normalize_production(raw, expected):
    assert normalize_domain(raw) == expected


def test_normalize_development_keeps_port():
    assert normalize_domain("http://localhost:3001/", development=True) == "localhost:3001"
    assert normalize_domain("localhost:3001") == "localhost"


@pytest.mark.parametrize(
    "raw",
    [
        "https://www.example.com/",
        "example.com:443",
        "http://www.www.a.b//",
        "LOCALHOST:3000",
        "www. example.com",
        "example.com /",
        "http:// www.example.com",
        " https:// www. example.com :3000 / ",
    ],
)
@pytest.mark.parametrize("development", [False, True])
def test_normalize_is_idempotent(raw, development):
    once = normalize_domain(raw, development)
    assert normalize_domain(once, development) == once


def test_normalize_strips_whitespace_exposed_by_other_steps():
    assert normalize_domain("www. example.com") == "example.com"
    assert normalize_domain("example.com /") == "example.com"
    assert normalize_domain("http:// www.example.com") == "example.com"


def test_port_alias_lookup():
    aliases = {"3001": "localhost:3001"}
    assert port_to_tenant_alias("example.com:3001", aliases) == "localhost:3001"
    assert port_to_tenant_alias("example.com:9999", aliases) is None
    assert port_to_tenant_alias("example.com", aliases) is None


def test_candidates_in_development_carry_alias():
    settings = Settings(_env_file=None, environment="development")
    match = domain_candidates("example.com:3001", settings)
    assert match.host == "example.com:3001"
    assert match.alias == "localhost:3001"
    # Local domain of a tenant matches through the alias
    assert match.matches("https://www.someothersite.com", "localhost:3001")


def test_candidates_in_production_ignore_port():
    settings = Settings(_env_file=None, environment="production")
    match = domain_candidates("example.com:3001", settings)
    assert match.host == "example.com"
    assert match.alias is None
    assert match.matches("https://www.example.com/", None)
    assert not match.matches("other.com", "localhost:3001")


def test_match_cache_key_distinguishes_aliases():
    a = DomainMatch(host="localhost:3000", alias="localhost:3000", development=True)
    b = DomainMatch(host="localhost:3001", alias="localhost:3001", development=True)
    assert a.cache_key != b.cache_key
