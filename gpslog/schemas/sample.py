"""
schemas/sample.py
-----------------
Pydantic models for location ingestion and readback.

Range checks live here, at the HTTP edge. The store itself accepts any
finite coordinate.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SampleCreate(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False, examples=[52.09])
    longitude: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False, examples=[5.12])


class SampleAccepted(BaseModel):
    tenant_id: str
    recorded_at: datetime


class SampleRead(BaseModel):
    latitude: float
    longitude: float
    recorded_at: datetime

    model_config = {"from_attributes": True}


class SampleListResponse(BaseModel):
    total: int
    items: list[SampleRead]
