"""Location provider interface (port) for device position requests."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from ponto.core.models import LocationSample


class LocationProvider(Protocol):
    """Port: answers one position request from the device.

    Implementations raise ``LocationError`` when permission is denied or no
    provider is available. The caller bounds the request with its own
    timeout.
    """

    async def request_location(
        self,
        *,
        high_accuracy: bool,
        timeout_ms: int,
        max_age_ms: int,
    ) -> LocationSample: ...
