"""
reconcile.py
------------
One-shot script to repair partial tenants under DATA_ROOT.

Recreates missing sample stores / track files for registered tenants and
reports artifact directories that have no registry row. Stop the server
before running with --prune: a creation in flight looks like an orphan.

Usage:
    python reconcile.py            # report + repair
    python reconcile.py --prune    # also delete orphaned directories
"""

import argparse
import asyncio

from gpslog.core.config import settings
from gpslog.core.logging import configure_logging
from gpslog.services.storage_service import TenantStorage


async def run(prune: bool) -> None:
    storage = TenantStorage.from_settings(settings)
    report = await storage.reconcile(prune_orphans=prune)
    print(report.model_dump_json(indent=2))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--prune", action="store_true", help="delete orphaned tenant directories")
    args = parser.parse_args()
    configure_logging()
    asyncio.run(run(args.prune))
