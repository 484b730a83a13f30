"""
services/sample_service.py
--------------------------
Per-tenant sample store: one SQLite file per tenant holding an append-only
log of location samples.

Critical invariants:
  - A tenant's samples live only in that tenant's file. There is no query
    that can reach two tenants' data at once.
  - Rows are only ever INSERTed. No update or delete path exists.
  - append() never creates a store. Writing to a tenant that has no store
    is a caller error (unknown tenant, or registry/store out of sync).
"""

from datetime import datetime
from typing import AsyncIterator

from sqlalchemy import func, select

from gpslog.core.exceptions import Conflict, StoreNotFound
from gpslog.core.logging import get_logger
from gpslog.db.base import SampleStoreBase, utcnow
from gpslog.db.layout import TenantLayout, parse_tenant_id
from gpslog.db.session import create_schema, open_database, open_session, translate_errors
from gpslog.models.sample import Sample

logger = get_logger(__name__)


class SampleStore:

    def __init__(self, layout: TenantLayout, busy_timeout: float = 5.0) -> None:
        self.layout = layout
        self.busy_timeout = busy_timeout

    def exists(self, tenant_id: str) -> bool:
        return self.layout.store_path(tenant_id).is_file()

    def _require_store(self, tenant_id: str, operation: str):
        tenant_id = parse_tenant_id(tenant_id, operation)
        path = self.layout.store_path(tenant_id)
        if not path.is_file():
            raise StoreNotFound(tenant_id, operation=operation)
        return tenant_id, path

    async def create(self, tenant_id: str) -> None:
        """
        Create the store file and its schema for a brand-new tenant.
        The file is claimed with exclusive creation, so two creators for the
        same id cannot both succeed; the loser gets Conflict.
        """
        tenant_id = parse_tenant_id(tenant_id, "create_store")
        path = self.layout.store_path(tenant_id)
        with translate_errors("create_store", tenant_id):
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                # SQLite treats a zero-length file as an empty database.
                path.open("xb").close()
            except FileExistsError as exc:
                raise Conflict(
                    f"Sample store already exists for tenant '{tenant_id}'",
                    operation="create_store",
                    tenant_id=tenant_id,
                    cause=exc,
                ) from exc
            async with open_database(path, self.busy_timeout) as engine:
                await create_schema(engine, SampleStoreBase.metadata)

        logger.info("Created sample store", tenant_id=tenant_id, path=str(path))

    async def append(self, tenant_id: str, latitude: float, longitude: float) -> datetime:
        """
        Write one sample stamped with the current UTC time and return that time.
        Does not touch the registry.
        """
        tenant_id, path = self._require_store(tenant_id, "append_sample")
        recorded_at = utcnow()
        with translate_errors("append_sample", tenant_id):
            async with open_session(path, self.busy_timeout) as session:
                session.add(
                    Sample(
                        latitude=float(latitude),
                        longitude=float(longitude),
                        recorded_at=recorded_at,
                    )
                )
        logger.debug("Sample appended", tenant_id=tenant_id, recorded_at=recorded_at.isoformat())
        return recorded_at

    async def list_all(self, tenant_id: str) -> AsyncIterator[Sample]:
        """
        Stream every sample in insertion order.

        Each call opens the file afresh, so iteration can be restarted by
        calling again. Read-committed, no snapshot guarantee: appends that
        commit while the stream is open may or may not be seen.
        """
        tenant_id, path = self._require_store(tenant_id, "list_samples")
        with translate_errors("list_samples", tenant_id):
            async with open_session(path, self.busy_timeout) as session:
                result = await session.stream_scalars(select(Sample).order_by(Sample.seq))
                async for sample in result:
                    yield sample

    async def count(self, tenant_id: str) -> int:
        tenant_id, path = self._require_store(tenant_id, "count_samples")
        with translate_errors("count_samples", tenant_id):
            async with open_session(path, self.busy_timeout) as session:
                result = await session.execute(select(func.count()).select_from(Sample))
                return result.scalar_one()
