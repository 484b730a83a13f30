"""
models/sample.py
----------------
One location observation. Lives in the owning tenant's own SQLite file, so the
table has no tenant_id column: isolation is physical, not a WHERE clause.

Rows are append-only. Nothing in the code base issues UPDATE or DELETE
against this table.
"""

from datetime import datetime

from sqlalchemy import Float, Integer
from sqlalchemy.orm import Mapped, mapped_column

from gpslog.db.base import SampleStoreBase, UTCDateTime


class Sample(SampleStoreBase):
    __tablename__ = "location_samples"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Sample seq={self.seq} lat={self.latitude} lon={self.longitude} "
            f"at={self.recorded_at.isoformat()}>"
        )
