"""
api/routes/tenants.py
---------------------
Device (tenant) registration endpoints.

POST /api/users         — Register a device; returns the new tenant.
GET  /api/users         — List all tenant ids in registration order.
GET  /api/users/{id}    — Tenant metadata.
"""

from fastapi import APIRouter, status

from gpslog.core.logging import get_logger
from gpslog.dependencies import ClientIP, StorageDep
from gpslog.schemas.tenant import TenantCreate, TenantRead

logger = get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "",
    response_model=TenantRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new device",
)
async def create_user(body: TenantCreate, storage: StorageDep, ip: ClientIP) -> TenantRead:
    """
    Creates the device's sample store and track file, then registers it.
    The device is only reported as registered once every step has succeeded.
    """
    tenant = await storage.create_tenant(body.device_id)
    logger.info("Created new user", ip=ip, tenant_id=tenant.id)
    return TenantRead.model_validate(tenant)


@router.get(
    "",
    response_model=list[str],
    summary="List all registered device ids",
)
async def list_users(storage: StorageDep, ip: ClientIP) -> list[str]:
    tenant_ids = await storage.list_tenants()
    logger.info("Requested list of users", ip=ip, count=len(tenant_ids))
    return tenant_ids


@router.get(
    "/{tenant_id}",
    response_model=TenantRead,
    summary="Get a device's metadata",
)
async def get_user(tenant_id: str, storage: StorageDep, ip: ClientIP) -> TenantRead:
    tenant = await storage.get_tenant(tenant_id)
    logger.info("User lookup", ip=ip, tenant_id=tenant.id)
    return TenantRead.model_validate(tenant)
