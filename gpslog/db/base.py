"""
db/base.py
----------
Declarative bases and shared column types.

The registry and the per-tenant sample stores live in different SQLite files,
so each gets its own DeclarativeBase and therefore its own MetaData:
create_all() on a sample store never creates the tenants table and vice versa.

UTCDateTime: SQLite has no timezone-aware datetime type. Values are stored as
naive UTC and come back tagged with timezone.utc.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class RegistryBase(DeclarativeBase):
    """Base class for tables in the shared registry file."""
    pass


class SampleStoreBase(DeclarativeBase):
    """Base class for tables in a per-tenant sample store file."""
    pass


class UTCDateTime(TypeDecorator):
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to a UTCDateTime column")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    return str(uuid.uuid4())
