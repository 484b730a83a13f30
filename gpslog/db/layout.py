"""
db/layout.py
------------
On-disk layout under DATA_ROOT.

    <root>/db/users/users.db                    registry
    <root>/db/users/<id>/location_data.db       per-tenant sample store
    <root>/gpx/users/<id>/location_data.gpx     per-tenant track export

Every per-tenant path is derived from the *parsed* UUID, never from the raw
string a caller passed in, so "../" and friends cannot leave the root.
"""

import uuid
from pathlib import Path

from gpslog.core.exceptions import TenantNotFound

REGISTRY_FILENAME = "users.db"
SAMPLE_STORE_FILENAME = "location_data.db"
TRACK_FILENAME = "location_data.gpx"


def parse_tenant_id(raw: str, operation: str = "") -> str:
    """
    Return the canonical string form of a tenant id.
    Anything that is not a UUID cannot name a tenant, so it is reported as
    TenantNotFound rather than a validation error.
    """
    try:
        return str(uuid.UUID(str(raw)))
    except (ValueError, TypeError, AttributeError):
        raise TenantNotFound(str(raw), operation=operation) from None


class TenantLayout:

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def db_root(self) -> Path:
        return self.root / "db" / "users"

    @property
    def gpx_root(self) -> Path:
        return self.root / "gpx" / "users"

    @property
    def registry_path(self) -> Path:
        return self.db_root / REGISTRY_FILENAME

    def store_dir(self, tenant_id: str) -> Path:
        return self.db_root / parse_tenant_id(tenant_id)

    def store_path(self, tenant_id: str) -> Path:
        return self.store_dir(tenant_id) / SAMPLE_STORE_FILENAME

    def track_dir(self, tenant_id: str) -> Path:
        return self.gpx_root / parse_tenant_id(tenant_id)

    def track_path(self, tenant_id: str) -> Path:
        return self.track_dir(tenant_id) / TRACK_FILENAME

    def create_tenant_dirs(self, tenant_id: str) -> None:
        """Create both per-tenant directories. Existing directories are fine."""
        self.store_dir(tenant_id).mkdir(parents=True, exist_ok=True)
        self.track_dir(tenant_id).mkdir(parents=True, exist_ok=True)

    def tenant_ids_on_disk(self) -> set[str]:
        """Ids that own at least one per-tenant directory."""
        found: set[str] = set()
        for parent in (self.db_root, self.gpx_root):
            if not parent.is_dir():
                continue
            for child in parent.iterdir():
                if not child.is_dir():
                    continue
                try:
                    found.add(parse_tenant_id(child.name))
                except TenantNotFound:
                    continue
        return found
