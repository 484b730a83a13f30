"""
services/track_service.py
-------------------------
GPX track export, one file per tenant.

The file is written once, empty, when the tenant is created. Ingested samples
are not yet mirrored into it (export-on-append is deferred), so every file in
the tree currently holds a single empty <trkseg>.
"""

from xml.sax.saxutils import escape, quoteattr

from gpslog.core.exceptions import Conflict
from gpslog.core.logging import get_logger
from gpslog.db.layout import TenantLayout, parse_tenant_id
from gpslog.db.session import translate_errors

logger = get_logger(__name__)

GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"

EMPTY_TRACK_TEMPLATE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<gpx version=\"1.1\" creator={creator} xmlns=\"{namespace}\">\n"
    "  <trk>\n"
    "    <name>{name}</name>\n"
    "    <trkseg>\n"
    "    </trkseg>\n"
    "  </trk>\n"
    "</gpx>\n"
)


def render_empty_track(creator: str = "gpslog", name: str | None = None) -> str:
    """The empty GPX envelope: one named track with one empty segment."""
    return EMPTY_TRACK_TEMPLATE.format(
        creator=quoteattr(creator),
        namespace=GPX_NAMESPACE,
        name=escape(name if name is not None else creator),
    )


class TrackExporter:

    def __init__(self, layout: TenantLayout, creator: str = "gpslog") -> None:
        self.layout = layout
        self.creator = creator

    def exists(self, tenant_id: str) -> bool:
        return self.layout.track_path(tenant_id).is_file()

    def initialize(self, tenant_id: str) -> None:
        """Write the empty envelope. Raises Conflict if the file already exists."""
        tenant_id = parse_tenant_id(tenant_id, "initialize_track")
        path = self.layout.track_path(tenant_id)
        with translate_errors("initialize_track", tenant_id):
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                with path.open("x", encoding="utf-8") as fh:
                    fh.write(render_empty_track(self.creator))
            except FileExistsError as exc:
                raise Conflict(
                    f"Track file already exists for tenant '{tenant_id}'",
                    operation="initialize_track",
                    tenant_id=tenant_id,
                    cause=exc,
                ) from exc

        logger.info("Created GPX file", tenant_id=tenant_id, path=str(path))
