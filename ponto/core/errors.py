"""Error types raised by the validation core and its adapters."""

from __future__ import annotations


class LocationError(Exception):
    """The device could not produce a location fix.

    Covers denied permission, no available provider and request timeouts.
    """


class SiteConfigError(ValueError):
    """An authorized-site record is malformed."""
