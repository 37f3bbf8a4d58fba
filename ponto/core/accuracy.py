"""GPS accuracy classification.

Maps a device-reported accuracy radius to a qualitative tier and a
confidence score. Thresholds are evaluated in ascending order and the
first one that fits wins.
"""

from __future__ import annotations

import math

from ponto.core.models import AccuracyQuality, AccuracyTier

# (max accuracy in meters, tier, acceptable, confidence, message)
_ACCURACY_TABLE: tuple[tuple[float, AccuracyTier, bool, float, str], ...] = (
    (10, AccuracyTier.EXCELLENT, True, 1.0, "high precision GPS"),
    (30, AccuracyTier.VERY_GOOD, True, 0.9, "good precision GPS"),
    (50, AccuracyTier.GOOD, True, 0.8, "acceptable precision GPS"),
    (100, AccuracyTier.ACCEPTABLE, True, 0.7, "average precision GPS, adaptive range will be used"),
    (200, AccuracyTier.LOW, True, 0.6, "low precision GPS, using an enlarged range"),
    (500, AccuracyTier.VERY_LOW, True, 0.4, "very imprecise GPS, using the emergency range"),
    (math.inf, AccuracyTier.UNACCEPTABLE, False, 0.2, "extremely imprecise GPS, try again"),
)


def classify(accuracy_m: float) -> AccuracyQuality:
    for limit, tier, acceptable, confidence, message in _ACCURACY_TABLE:
        if accuracy_m <= limit:
            return AccuracyQuality(tier=tier, acceptable=acceptable,
                                   confidence=confidence, message=message)
    # NaN compares false against every limit.
    _, tier, acceptable, confidence, message = _ACCURACY_TABLE[-1]
    return AccuracyQuality(tier=tier, acceptable=acceptable,
                           confidence=confidence, message=message)
