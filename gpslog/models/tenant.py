"""
models/tenant.py
----------------
Registry row: one per registered device.

The registry is authoritative for existence. A tenant's sample store and
track file are derived artifacts that must exist iff this row exists.

`seq` is the insertion order; listing sorts by it. `id` is the public,
immutable identifier and carries the uniqueness constraint.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gpslog.db.base import RegistryBase, UTCDateTime, generate_uuid, utcnow


class Tenant(RegistryBase):
    __tablename__ = "tenants"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(
        String(36), unique=True, nullable=False, index=True, default=generate_uuid
    )
    # Stored verbatim, only ever bound as a parameter.
    label: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    last_sample_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} label={self.label!r}>"
