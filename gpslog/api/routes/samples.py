"""
api/routes/samples.py
---------------------
Location ingestion endpoints, strictly scoped to the tenant in the path.

POST /api/users/{id}/locations — Append one location sample.
GET  /api/users/{id}/locations — Every sample for the tenant, oldest first.
"""

from fastapi import APIRouter, status

from gpslog.core.logging import get_logger
from gpslog.dependencies import ClientIP, StorageDep
from gpslog.schemas.sample import SampleAccepted, SampleCreate, SampleListResponse, SampleRead

logger = get_logger(__name__)

router = APIRouter(prefix="/api/users/{tenant_id}/locations", tags=["Locations"])


@router.post(
    "",
    response_model=SampleAccepted,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest a location sample",
)
async def ingest_location(
    tenant_id: str,
    body: SampleCreate,
    storage: StorageDep,
) -> SampleAccepted:
    """
    The server stamps the sample with its own clock; clients cannot supply
    recorded_at. A 503 means the tenant's store was busy: retry.
    """
    recorded_at = await storage.ingest_sample(tenant_id, body.latitude, body.longitude)
    return SampleAccepted(tenant_id=tenant_id, recorded_at=recorded_at)


@router.get(
    "",
    response_model=SampleListResponse,
    summary="List a device's location samples",
)
async def list_locations(tenant_id: str, storage: StorageDep, ip: ClientIP) -> SampleListResponse:
    items = [SampleRead.model_validate(s) async for s in storage.list_samples(tenant_id)]
    total = await storage.count_samples(tenant_id)
    logger.info("Requested locations", ip=ip, tenant_id=tenant_id, count=total)
    return SampleListResponse(total=total, items=items)
