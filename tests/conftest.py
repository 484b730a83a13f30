"""
Shared test fixtures. Every test gets its own DATA_ROOT under tmp_path.
"""

import pytest

from gpslog.db.layout import TenantLayout
from gpslog.main import create_application
from gpslog.services.registry_service import TenantRegistry
from gpslog.services.sample_service import SampleStore
from gpslog.services.storage_service import TenantStorage
from gpslog.services.track_service import TrackExporter


@pytest.fixture
def data_root(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def layout(data_root) -> TenantLayout:
    return TenantLayout(data_root)


@pytest.fixture
def registry(layout) -> TenantRegistry:
    return TenantRegistry(layout, busy_timeout=5.0)


@pytest.fixture
def sample_store(layout) -> SampleStore:
    return SampleStore(layout, busy_timeout=5.0)


@pytest.fixture
def track_exporter(layout) -> TrackExporter:
    return TrackExporter(layout, creator="gpslog")


@pytest.fixture
def storage(data_root) -> TenantStorage:
    return TenantStorage(root=data_root, busy_timeout=5.0)


@pytest.fixture
def app(storage):
    return create_application(storage=storage)


@pytest.fixture
def tenant_id() -> str:
    return "3f2b8c1e-6a4d-4e0b-9a57-0c1d2e3f4a5b"
