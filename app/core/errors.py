"""Error taxonomy shared by the record store, query engine and cache layers."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Fatal deployment problem: bad credentials or no active tenant at all."""


class RemoteQueryError(Exception):
    """A single query against the record store failed (network, timeout, HTTP)."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        operation: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.table = table
        self.operation = operation
        self.status_code = status_code


class RecordStorePermissionError(RemoteQueryError):
    """The token may not read this table. Callers treat it as an empty table."""


class ContentFetchError(Exception):
    """Every query strategy failed for a table."""

    def __init__(
        self,
        message: str,
        table: str,
        operation: str,
        tenant_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.table = table
        self.operation = operation
        self.tenant_id = tenant_id

    def to_dict(self) -> dict:
        return {
            "detail": str(self),
            "table": self.table,
            "operation": self.operation,
            "tenant": self.tenant_id,
        }


class SlugConflictError(Exception):
    """An article and a guide of the same tenant share a slug."""

    def __init__(self, tenant_id: str, slugs: list[str]) -> None:
        super().__init__(
            f"Tenant {tenant_id} has slugs used by both articles and guides: "
            + ", ".join(sorted(slugs))
        )
        self.tenant_id = tenant_id
        self.slugs = slugs

    def to_dict(self) -> dict:
        return {"detail": str(self), "tenant": self.tenant_id, "slugs": sorted(self.slugs)}
