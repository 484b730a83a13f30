"""
services/registry_service.py
----------------------------
The tenant registry: one shared SQLite file mapping
tenant_id → (label, created_at, last_sample_at).

Service layer is responsible for:
  - Constructing queries (SQLAlchemy expressions only; every value is bound)
  - Distinguishing "registry never created" from "tenant unknown"
  - Returning domain objects (ORM models) to the caller
  - Never returning HTTP responses (that's the route's job)
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from gpslog.core.exceptions import RegistryAbsent, TenantNotFound
from gpslog.core.logging import get_logger
from gpslog.db.base import RegistryBase, generate_uuid, utcnow
from gpslog.db.layout import TenantLayout, parse_tenant_id
from gpslog.db.session import (
    create_schema,
    is_missing_table_error,
    open_database,
    open_session,
    session_scope,
    translate_errors,
)
from gpslog.models.tenant import Tenant

logger = get_logger(__name__)


class TenantRegistry:

    def __init__(self, layout: TenantLayout, busy_timeout: float = 5.0) -> None:
        self.layout = layout
        self.busy_timeout = busy_timeout

    @property
    def path(self):
        return self.layout.registry_path

    def exists(self) -> bool:
        return self.path.is_file()

    def _require_registry(self, operation: str, tenant_id: str | None = None) -> None:
        if not self.exists():
            raise RegistryAbsent(operation=operation, tenant_id=tenant_id)

    async def register(
        self,
        label: str,
        tenant_id: str | None = None,
        created_at: datetime | None = None,
    ) -> Tenant:
        """
        Insert a registry row, creating the registry file and schema on first use.
        Allocates a fresh UUID4 when tenant_id is not given.
        Raises Conflict if the id is already registered.
        """
        tenant_id = parse_tenant_id(tenant_id) if tenant_id else generate_uuid()
        tenant = Tenant(
            id=tenant_id,
            label=label,
            created_at=created_at or utcnow(),
            last_sample_at=None,
        )
        with translate_errors("register", tenant_id):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with open_database(self.path, self.busy_timeout) as engine:
                await create_schema(engine, RegistryBase.metadata)
                async with session_scope(engine) as session:
                    session.add(tenant)
                    await session.flush()

        logger.info("Tenant registered", tenant_id=tenant.id, label=tenant.label)
        return tenant

    async def list_ids(self) -> list[str]:
        """
        All tenant ids in insertion order. [] for an empty registry.
        Raises RegistryAbsent if no tenant has ever registered.
        """
        self._require_registry("list_tenants")
        with translate_errors("list_tenants"):
            try:
                async with open_session(self.path, self.busy_timeout) as session:
                    result = await session.execute(select(Tenant.id).order_by(Tenant.seq))
                    return list(result.scalars().all())
            except OperationalError as exc:
                # File created but schema never written: nobody registered yet.
                if is_missing_table_error(exc):
                    raise RegistryAbsent(operation="list_tenants") from exc
                raise

    async def get(self, tenant_id: str) -> Tenant:
        self._require_registry("get_tenant", tenant_id)
        tenant_id = parse_tenant_id(tenant_id, "get_tenant")
        with translate_errors("get_tenant", tenant_id):
            try:
                async with open_session(self.path, self.busy_timeout) as session:
                    result = await session.execute(select(Tenant).where(Tenant.id == tenant_id))
                    tenant = result.scalar_one_or_none()
            except OperationalError as exc:
                if is_missing_table_error(exc):
                    raise RegistryAbsent(operation="get_tenant", tenant_id=tenant_id) from exc
                raise
        if tenant is None:
            raise TenantNotFound(tenant_id, operation="get_tenant")
        return tenant

    async def touch_last_sample(self, tenant_id: str, timestamp: datetime) -> None:
        """
        Set last_sample_at. A plain overwrite: idempotent under retry,
        last writer wins when two updates race.
        """
        self._require_registry("touch_last_sample", tenant_id)
        tenant_id = parse_tenant_id(tenant_id, "touch_last_sample")
        with translate_errors("touch_last_sample", tenant_id):
            async with open_session(self.path, self.busy_timeout) as session:
                result = await session.execute(
                    update(Tenant)
                    .where(Tenant.id == tenant_id)
                    .values(last_sample_at=timestamp)
                )
                matched = result.rowcount
        if not matched:
            raise TenantNotFound(tenant_id, operation="touch_last_sample")
