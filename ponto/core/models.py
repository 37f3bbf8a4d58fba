"""Ponto — core internal data models.

These are plain dataclasses with no framework dependencies.
JSON payloads are converted to/from these at the boundary.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any

# Device-reported horizontal uncertainty, in meters.
AccuracyRadius = float


class ReasonCode(str, enum.Enum):
    MATCHED = "Matched"
    BEST_EFFORT_ACCEPTED = "BestEffortAccepted"
    BEST_EFFORT_REJECTED = "BestEffortRejected"
    NO_MATCH = "NoMatch"
    NO_SITES_CONFIGURED = "NoSitesConfigured"
    LOCATION_UNAVAILABLE = "LocationUnavailable"


class AccuracyTier(str, enum.Enum):
    EXCELLENT = "Excellent"
    VERY_GOOD = "VeryGood"
    GOOD = "Good"
    ACCEPTABLE = "Acceptable"
    LOW = "Low"
    VERY_LOW = "VeryLow"
    UNACCEPTABLE = "Unacceptable"


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class AuthorizedSite:
    id: str
    name: str
    coordinate: Coordinate
    nominal_radius_m: float
    active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "latitude": self.coordinate.latitude,
            "longitude": self.coordinate.longitude,
            "nominal_radius_m": self.nominal_radius_m,
            "active": self.active,
        }


@dataclass(frozen=True)
class LocationSample:
    coordinate: Coordinate
    accuracy_m: AccuracyRadius
    captured_at: datetime

    def to_dict(self) -> dict:
        return {
            "latitude": self.coordinate.latitude,
            "longitude": self.coordinate.longitude,
            "accuracy_m": self.accuracy_m,
            "captured_at": self.captured_at.isoformat(),
        }


@dataclass(frozen=True)
class AccuracyQuality:
    tier: AccuracyTier
    acceptable: bool
    confidence: float
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "tier": self.tier.value,
            "acceptable": self.acceptable,
            "confidence": self.confidence,
            "message": self.message,
        }


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one reading against the full site set.

    ``site`` is the matched site, or the nearest one when nothing matched.
    Distances are ``None`` only when there were no active sites at all.
    """
    matched: bool
    site: AuthorizedSite | None
    distance_m: float | None
    effective_radius_m: float | None
    confidence: float
    reason: ReasonCode

    def to_dict(self) -> dict:
        return {
            "matched": self.matched,
            "site": self.site.to_dict() if self.site is not None else None,
            "distance_m": round(self.distance_m, 1) if self.distance_m is not None else None,
            "effective_radius_m": self.effective_radius_m,
            "confidence": self.confidence,
            "reason": self.reason.value,
        }


@dataclass(frozen=True)
class SiteChange:
    changed: bool
    previous_site: AuthorizedSite | None = None

    def to_dict(self) -> dict:
        return {
            "changed": self.changed,
            "previous_site": self.previous_site.name if self.previous_site is not None else None,
        }


@dataclass(frozen=True)
class ValidationVerdict:
    allowed: bool
    sample: LocationSample | None
    match: MatchResult | None
    reason: ReasonCode
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason.value,
            "message": self.message,
            "sample": self.sample.to_dict() if self.sample is not None else None,
            "match": self.match.to_dict() if self.match is not None else None,
        }
