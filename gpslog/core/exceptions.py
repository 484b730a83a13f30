"""
core/exceptions.py
------------------
Typed error taxonomy for the storage layer.

Every fault the storage core can produce is one of these. Raw SQLAlchemy and
OS errors are translated at the storage boundary (db/session.translate_errors),
so routes and the facade only ever have to know about StorageError.

    StorageError
    ├── NotFound
    │   ├── RegistryAbsent   no tenant has ever registered
    │   ├── TenantNotFound   id unknown to an existing registry
    │   └── StoreNotFound    no sample store on disk for the id
    ├── Conflict             artifact already exists for the id
    ├── Busy                 SQLite lock not acquired in time; retryable
    ├── StorageFault         I/O failure, permissions, corrupt file
    └── InvalidInput         caller input failed shape checks
"""

from __future__ import annotations


class StorageError(Exception):
    """Base class for all storage-layer errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        tenant_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.tenant_id = tenant_id
        self.cause = cause
        super().__init__(message)

    def context(self) -> dict:
        """Key/value context for structured log lines."""
        ctx = {"error": self.message, "error_type": type(self).__name__}
        if self.operation:
            ctx["operation"] = self.operation
        if self.tenant_id is not None:
            ctx["tenant_id"] = self.tenant_id
        if self.cause is not None:
            ctx["cause"] = repr(self.cause)
        return ctx


class NotFound(StorageError):
    """Something the caller asked for does not exist."""


class RegistryAbsent(NotFound):
    """The registry file does not exist yet, i.e. no tenant was ever created."""

    def __init__(self, *, operation: str = "", tenant_id: str | None = None) -> None:
        super().__init__(
            "There are no users on this server yet",
            operation=operation,
            tenant_id=tenant_id,
        )


class TenantNotFound(NotFound):
    """The registry exists but has no row for the id."""

    def __init__(self, tenant_id: str, *, operation: str = "") -> None:
        super().__init__(
            f"Tenant '{tenant_id}' not found",
            operation=operation,
            tenant_id=tenant_id,
        )


class StoreNotFound(NotFound):
    """No sample store exists on disk for the id."""

    def __init__(self, tenant_id: str, *, operation: str = "") -> None:
        super().__init__(
            f"No sample store for tenant '{tenant_id}'",
            operation=operation,
            tenant_id=tenant_id,
        )


class Conflict(StorageError):
    """A store, track file or registry row already exists for the id."""


class Busy(StorageError):
    """The SQLite file stayed locked past the busy timeout."""

    retryable = True


class StorageFault(StorageError):
    """Disk full, permission denied, corrupt file, or any other I/O failure."""


class InvalidInput(StorageError):
    """A label or coordinate failed basic shape checks."""
