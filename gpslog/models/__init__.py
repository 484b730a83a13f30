"""
models/__init__.py
------------------
Re-export all models and both declarative bases, so schema creation can
populate metadata through a single import:

    from gpslog.models import RegistryBase, SampleStoreBase
"""

from gpslog.db.base import RegistryBase, SampleStoreBase
from gpslog.models.sample import Sample
from gpslog.models.tenant import Tenant

__all__ = ["RegistryBase", "SampleStoreBase", "Sample", "Tenant"]
