"""
schemas/tenant.py
-----------------
Pydantic request/response models for Tenant.

Naming convention:
  TenantCreate  → inbound request body
  TenantRead    → outbound response body (never exposes internal fields)

The request field is called device_id for compatibility with existing
clients; it becomes the tenant's label and is never used as an identifier.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class TenantCreate(BaseModel):
    device_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        examples=["phone-1"],
        description="Human-readable device name, stored as the tenant label",
    )

    @field_validator("device_id")
    @classmethod
    def strip_device_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("device_id must not be blank")
        return v


class TenantRead(BaseModel):
    id: str
    label: str
    created_at: datetime
    last_sample_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReconciliationReport(BaseModel):
    repaired_stores: List[str] = Field(default_factory=list)
    repaired_tracks: List[str] = Field(default_factory=list)
    orphans: List[str] = Field(default_factory=list)
    pruned: List[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.repaired_stores or self.repaired_tracks or self.pruned)
