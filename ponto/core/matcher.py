"""Site matching: which authorized site, if any, a reading falls in.

Sites are scanned in the order given. The first site whose adaptive radius
contains the reading wins, even if a later site is geometrically closer.
The nearest site is tracked regardless so rejections can tell the user how
far away they are.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from ponto.core.accuracy import classify
from ponto.core.adaptive import adaptive_radius
from ponto.core.geomath import distance_meters
from ponto.core.models import (
    AuthorizedSite,
    Coordinate,
    MatchResult,
    ReasonCode,
    SiteChange,
)

# Distance (meters) from the previous registration site beyond which the
# employee is considered to have moved to another site.
SITE_CHANGE_THRESHOLD_M = 50.0


def active_sites(sites: Iterable[AuthorizedSite]) -> list[AuthorizedSite]:
    return [s for s in sites if s.active]


def match(coordinate: Coordinate, sites: Sequence[AuthorizedSite],
          accuracy_m: float) -> MatchResult:
    """Match one reading against every active site."""
    candidates = active_sites(sites)
    if not candidates:
        return MatchResult(
            matched=False,
            site=None,
            distance_m=None,
            effective_radius_m=None,
            confidence=0.0,
            reason=ReasonCode.NO_SITES_CONFIGURED,
        )

    nearest: AuthorizedSite | None = None
    nearest_dist = math.inf
    nearest_radius = 0

    for site in candidates:
        dist = distance_meters(coordinate, site.coordinate)
        radius = adaptive_radius(site.nominal_radius_m, accuracy_m)

        if dist < nearest_dist:
            nearest, nearest_dist, nearest_radius = site, dist, radius

        if dist <= radius:
            return MatchResult(
                matched=True,
                site=site,
                distance_m=dist,
                effective_radius_m=radius,
                confidence=classify(accuracy_m).confidence,
                reason=ReasonCode.MATCHED,
            )

    return MatchResult(
        matched=False,
        site=nearest,
        distance_m=nearest_dist,
        effective_radius_m=nearest_radius,
        confidence=0.0,
        reason=ReasonCode.NO_MATCH,
    )


def detect_site_change(
    coordinate: Coordinate,
    previous_site_id: str | None,
    sites: Sequence[AuthorizedSite],
    threshold_m: float = SITE_CHANGE_THRESHOLD_M,
) -> SiteChange:
    """Check whether a reading is away from the site of the last registration."""
    if not previous_site_id:
        return SiteChange(changed=False)

    previous = next((s for s in sites if s.id == previous_site_id), None)
    if previous is None:
        return SiteChange(changed=False)

    dist = distance_meters(coordinate, previous.coordinate)
    return SiteChange(changed=dist > threshold_m, previous_site=previous)
