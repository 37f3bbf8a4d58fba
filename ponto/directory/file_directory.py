"""File-based site directory.

Reads authorized sites from a YAML (or JSON) document:

    sites:
      - id: hq
        name: Head office
        latitude: -23.5505
        longitude: -46.6333
        radius_m: 100
        active: true

Records are validated here, at the boundary; the core only ever sees
well-formed AuthorizedSite values. The file is re-read when its
modification time changes.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Sequence

import structlog
import yaml

from ponto.core.errors import SiteConfigError
from ponto.core.models import AuthorizedSite, Coordinate

log = structlog.get_logger()

# Field names accepted for the nominal radius, in priority order.
_RADIUS_KEYS = ("radius_m", "nominal_radius_m", "range_meters")


def _as_float(raw: dict, key: str, site_id: str) -> float:
    try:
        value = float(raw[key])
    except KeyError:
        raise SiteConfigError(f"site {site_id!r}: missing {key}") from None
    except (TypeError, ValueError):
        raise SiteConfigError(f"site {site_id!r}: {key} must be a number") from None
    if not math.isfinite(value):
        raise SiteConfigError(f"site {site_id!r}: {key} must be finite")
    return value


def parse_site(raw: Any) -> AuthorizedSite:
    """Convert one raw record into an AuthorizedSite, or raise SiteConfigError."""
    if not isinstance(raw, dict):
        raise SiteConfigError(f"site record must be a mapping, got {type(raw).__name__}")

    site_id = raw.get("id")
    if site_id is None or str(site_id) == "":
        raise SiteConfigError("site record is missing an id")
    site_id = str(site_id)

    lat = _as_float(raw, "latitude", site_id)
    lon = _as_float(raw, "longitude", site_id)
    if not -90 <= lat <= 90:
        raise SiteConfigError(f"site {site_id!r}: latitude {lat} out of range")
    if not -180 <= lon <= 180:
        raise SiteConfigError(f"site {site_id!r}: longitude {lon} out of range")

    radius_key = next((k for k in _RADIUS_KEYS if k in raw), None)
    if radius_key is None:
        raise SiteConfigError(f"site {site_id!r}: missing radius_m")
    radius = _as_float(raw, radius_key, site_id)
    if radius < 0:
        raise SiteConfigError(f"site {site_id!r}: radius must be >= 0, got {radius}")

    active = raw.get("active", raw.get("is_active", True))
    if not isinstance(active, bool):
        raise SiteConfigError(f"site {site_id!r}: active must be true or false")

    return AuthorizedSite(
        id=site_id,
        name=str(raw.get("name") or site_id),
        coordinate=Coordinate(latitude=lat, longitude=lon),
        nominal_radius_m=radius,
        active=active,
    )


def parse_sites(document: Any) -> list[AuthorizedSite]:
    """Parse a whole document: either a list of records or ``{"sites": [...]}``."""
    if document is None:
        return []
    if isinstance(document, dict):
        document = document.get("sites") or []
    if not isinstance(document, list):
        raise SiteConfigError("site document must be a list or contain a 'sites' list")

    sites = [parse_site(raw) for raw in document]
    seen: set[str] = set()
    for site in sites:
        if site.id in seen:
            raise SiteConfigError(f"duplicate site id {site.id!r}")
        seen.add(site.id)
    return sites


class FileSiteDirectory:
    """SiteDirectory backed by a YAML/JSON file on disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._mtime: float | None = None
        self._sites: tuple[AuthorizedSite, ...] = ()

    @property
    def path(self) -> Path:
        return self._path

    def reload(self) -> tuple[AuthorizedSite, ...]:
        """Read the file again. Raises SiteConfigError on malformed content."""
        if not self._path.exists():
            log.warning("site_directory_missing", path=str(self._path))
            self._sites = ()
            self._mtime = None
            return self._sites

        mtime = self._path.stat().st_mtime
        with open(self._path) as f:
            try:
                document = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise SiteConfigError(f"cannot parse {self._path}: {exc}") from exc

        self._sites = tuple(parse_sites(document))
        self._mtime = mtime
        log.info("site_directory_loaded", path=str(self._path),
                 sites=len(self._sites),
                 active=sum(1 for s in self._sites if s.active))
        return self._sites

    async def list_sites(self) -> Sequence[AuthorizedSite]:
        if not self._path.exists():
            if self._mtime is not None or self._sites:
                return self.reload()
            return self._sites
        if self._mtime != self._path.stat().st_mtime:
            return self.reload()
        return self._sites
