"""
services/storage_service.py
---------------------------
TenantStorage: the storage API consumed by the HTTP layer.

It sequences the registry, the per-tenant sample stores and the track
exporter into the user-visible operations. It is built with an explicit root
directory; nothing below it reads settings or assumes a working directory.

Tenant creation is a five-step, non-atomic protocol:

    1. allocate id
    2. create directories
    3. create sample store
    4. write empty GPX track
    5. insert registry row

No step is rolled back on failure. Because the registry row is written last,
a failed creation never leaves a tenant that GetTenant can see; it can leave
artifacts on disk with no registry row (an "orphan"). reconcile() finds those
and, for registered tenants, recreates any artifact that went missing.
"""

import math
import numbers
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Iterator

from gpslog.core.exceptions import InvalidInput, NotFound, RegistryAbsent, StorageError
from gpslog.core.logging import get_logger
from gpslog.db.base import generate_uuid, utcnow
from gpslog.db.layout import TenantLayout
from gpslog.db.session import translate_errors
from gpslog.models.sample import Sample
from gpslog.models.tenant import Tenant
from gpslog.schemas.tenant import ReconciliationReport
from gpslog.services.registry_service import TenantRegistry
from gpslog.services.sample_service import SampleStore
from gpslog.services.track_service import TrackExporter

logger = get_logger(__name__)


@contextmanager
def _log_faults(operation: str, tenant_id: str | None = None) -> Iterator[None]:
    try:
        yield
    except StorageError as exc:
        context = {"operation": operation, "tenant_id": tenant_id, **exc.context()}
        # NotFound is a caller error, not a storage failure.
        if isinstance(exc, NotFound):
            logger.info("Lookup failed", **context)
        else:
            logger.error("Storage operation failed", **context)
        raise


def _check_coordinate(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInput(f"{name} must be a number", operation="ingest_sample")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be finite", operation="ingest_sample")
    return value


class TenantStorage:

    def __init__(
        self,
        root: Path,
        busy_timeout: float = 5.0,
        gpx_creator: str = "gpslog",
    ) -> None:
        self.layout = TenantLayout(root)
        self.registry = TenantRegistry(self.layout, busy_timeout)
        self.samples = SampleStore(self.layout, busy_timeout)
        self.tracks = TrackExporter(self.layout, gpx_creator)

    @classmethod
    def from_settings(cls, settings) -> "TenantStorage":
        return cls(
            root=settings.DATA_ROOT,
            busy_timeout=settings.SQLITE_BUSY_TIMEOUT,
            gpx_creator=settings.GPX_CREATOR,
        )

    @property
    def root(self) -> Path:
        return self.layout.root

    # ── Tenants ───────────────────────────────────────────────────────────────

    async def create_tenant(self, label: str) -> Tenant:
        """
        Run the five creation steps in order and return the registered tenant.
        Any failure is logged with the step that failed and re-raised; earlier
        steps are left in place for reconcile() to deal with.
        """
        if not isinstance(label, str) or not label.strip():
            raise InvalidInput("label must be a non-empty string", operation="create_tenant")

        tenant_id = generate_uuid()
        created_at = utcnow()
        step = "create_dirs"
        try:
            with translate_errors("create_tenant", tenant_id):
                self.layout.create_tenant_dirs(tenant_id)
            step = "create_store"
            await self.samples.create(tenant_id)
            step = "initialize_track"
            self.tracks.initialize(tenant_id)
            step = "register"
            tenant = await self.registry.register(label, tenant_id=tenant_id, created_at=created_at)
        except StorageError as exc:
            logger.error(
                "Tenant creation failed, partial tenant left on disk",
                **{"step": step, **exc.context(), "tenant_id": tenant_id},
            )
            raise

        logger.info("Created tenant", tenant_id=tenant.id, label=tenant.label)
        return tenant

    async def list_tenants(self) -> list[str]:
        """Tenant ids in registration order; [] when nobody has registered yet."""
        with _log_faults("list_tenants"):
            try:
                return await self.registry.list_ids()
            except RegistryAbsent:
                return []

    async def get_tenant(self, tenant_id: str) -> Tenant:
        with _log_faults("get_tenant", tenant_id):
            return await self.registry.get(tenant_id)

    # ── Samples ───────────────────────────────────────────────────────────────

    async def ingest_sample(self, tenant_id: str, latitude: float, longitude: float) -> datetime:
        """
        Append a sample, then best-effort refresh the registry's last_sample_at.
        The sample counts as accepted once the append commits; a failure in
        the registry update is logged and not reported to the caller.
        """
        latitude = _check_coordinate("latitude", latitude)
        longitude = _check_coordinate("longitude", longitude)

        with _log_faults("ingest_sample", tenant_id):
            recorded_at = await self.samples.append(tenant_id, latitude, longitude)

        try:
            await self.registry.touch_last_sample(tenant_id, recorded_at)
        except StorageError as exc:
            logger.warning(
                "Sample stored but last_sample_at not updated",
                **{**exc.context(), "tenant_id": tenant_id},
            )
        return recorded_at

    async def list_samples(self, tenant_id: str) -> AsyncIterator[Sample]:
        with _log_faults("list_samples", tenant_id):
            async for sample in self.samples.list_all(tenant_id):
                yield sample

    async def count_samples(self, tenant_id: str) -> int:
        with _log_faults("count_samples", tenant_id):
            return await self.samples.count(tenant_id)

    # ── Repair ────────────────────────────────────────────────────────────────

    async def reconcile(self, prune_orphans: bool = False) -> ReconciliationReport:
        """
        Bring disk back in line with the registry.

        Registered tenants missing a sample store or track file get a fresh,
        empty one. Directories for ids the registry does not know are orphans
        of failed creations; they are reported, and removed when
        prune_orphans is set. Only prune while no creation is in flight.

        Without a readable registry every directory looks like an orphan, so
        orphans are then reported but never pruned.
        """
        report = ReconciliationReport()
        registry_present = True
        with _log_faults("reconcile"):
            try:
                registered = await self.registry.list_ids()
            except RegistryAbsent:
                registry_present = False
                registered = []

        for tenant_id in registered:
            if not self.samples.exists(tenant_id):
                await self.samples.create(tenant_id)
                report.repaired_stores.append(tenant_id)
            if not self.tracks.exists(tenant_id):
                self.tracks.initialize(tenant_id)
                report.repaired_tracks.append(tenant_id)

        report.orphans = sorted(self.layout.tenant_ids_on_disk() - set(registered))
        if prune_orphans and not registry_present:
            logger.warning("Registry missing, orphan pruning skipped", orphans=report.orphans)
        elif prune_orphans:
            for tenant_id in report.orphans:
                with translate_errors("prune_orphan", tenant_id):
                    for directory in (self.layout.store_dir(tenant_id), self.layout.track_dir(tenant_id)):
                        if directory.is_dir():
                            shutil.rmtree(directory)
                report.pruned.append(tenant_id)

        if report.changed or report.orphans:
            logger.warning(
                "Reconciliation found partial tenants",
                repaired_stores=report.repaired_stores,
                repaired_tracks=report.repaired_tracks,
                orphans=report.orphans,
                pruned=report.pruned,
            )
        else:
            logger.info("Reconciliation clean", tenants=len(registered))
        return report
