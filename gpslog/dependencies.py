"""
dependencies.py
---------------
FastAPI dependency injection functions.

The TenantStorage instance is built once in the application lifespan from
settings and parked on app.state; routes receive it through get_storage so
tests can swap in one rooted at a temporary directory.
"""

from typing import Annotated

from fastapi import Depends, Request

from gpslog.services.storage_service import TenantStorage


def get_storage(request: Request) -> TenantStorage:
    return request.app.state.storage


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


StorageDep = Annotated[TenantStorage, Depends(get_storage)]
ClientIP = Annotated[str, Depends(client_ip)]
