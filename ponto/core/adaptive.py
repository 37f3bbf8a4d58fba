"""Adaptive geofence radius.

A tight nominal geofence is unusable when the device itself reports a
large uncertainty, so the effective radius grows with the reported
accuracy. It never drops below MIN_ADAPTIVE_RADIUS_M and gets extra slack
once the accuracy exceeds EXTRA_BUFFER_THRESHOLD_M.
"""

from __future__ import annotations

import math

MIN_ADAPTIVE_RADIUS_M = 50.0
HIGH_FACTOR_THRESHOLD_M = 50.0
HIGH_ACCURACY_FACTOR = 1.5
LOW_ACCURACY_FACTOR = 2.5
EXTRA_BUFFER_THRESHOLD_M = 100.0
EXTRA_BUFFER_RATIO = 0.3


def adaptive_radius(nominal_radius_m: float, accuracy_m: float) -> int:
    """Effective acceptance radius in whole meters."""
    nominal_radius_m = max(nominal_radius_m, 0.0)
    accuracy_m = max(accuracy_m, 0.0)

    factor = LOW_ACCURACY_FACTOR if accuracy_m > HIGH_FACTOR_THRESHOLD_M else HIGH_ACCURACY_FACTOR
    extra_buffer = 0.0
    if accuracy_m > EXTRA_BUFFER_THRESHOLD_M:
        extra_buffer = (accuracy_m - EXTRA_BUFFER_THRESHOLD_M) * EXTRA_BUFFER_RATIO

    radius = max(nominal_radius_m, accuracy_m * factor, MIN_ADAPTIVE_RADIUS_M) + extra_buffer
    # Round half up.
    return int(math.floor(radius + 0.5))
