"""Location acquisition: single requests, retries and the last-fix cache.

Depends on the LocationProvider protocol, not a concrete device.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, TYPE_CHECKING

import structlog

from ponto.core.errors import LocationError

if TYPE_CHECKING:
    from ponto.core.models import LocationSample
    from ponto.provider.base import LocationProvider

log = structlog.get_logger()

DEFAULT_TIMEOUT_MS = 15_000
DEFAULT_MAX_AGE_MS = 0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_CACHE_TTL_SECONDS = 30.0

# A sample at least this precise (meters) stops the retry loop early.
MIN_ACCURACY_M = 50.0

Sleep = Callable[[float], Awaitable[None]]


class LocationCache:
    """Last known location with a time-to-live.

    Owned by a LocationAcquirer; there is no process-wide cache.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._sample: LocationSample | None = None
        self._stored_at = 0.0

    def put(self, sample: LocationSample) -> None:
        self._sample = sample
        self._stored_at = self._clock()

    def age_seconds(self) -> float | None:
        if self._sample is None:
            return None
        return self._clock() - self._stored_at

    def is_valid(self) -> bool:
        age = self.age_seconds()
        return age is not None and age < self._ttl

    def get(self, max_age_ms: int) -> LocationSample | None:
        """Return the cached sample if it is younger than both limits."""
        if max_age_ms <= 0 or not self.is_valid():
            return None
        age = self.age_seconds()
        if age is None or age * 1000 > max_age_ms:
            return None
        return self._sample

    def clear(self) -> None:
        self._sample = None
        self._stored_at = 0.0


class LocationAcquirer:
    """Requests positions from a provider with timeout and retry."""

    def __init__(
        self,
        provider: LocationProvider,
        *,
        cache: LocationCache | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        min_accuracy_m: float = MIN_ACCURACY_M,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self.cache = cache if cache is not None else LocationCache()
        self._timeout_ms = timeout_ms
        self._max_age_ms = max_age_ms
        self._max_attempts = max_attempts
        self._retry_delay_ms = retry_delay_ms
        self._min_accuracy_m = min_accuracy_m
        self._sleep = sleep

    async def pause(self) -> None:
        """Wait the configured delay between two attempts."""
        if self._retry_delay_ms > 0:
            await self._sleep(self._retry_delay_ms / 1000)

    async def acquire(
        self,
        timeout_ms: int | None = None,
        max_age_ms: int | None = None,
    ) -> LocationSample:
        """Issue a single high-accuracy location request.

        Raises LocationError when the provider fails or the request does not
        complete within ``timeout_ms``.
        """
        timeout_ms = self._timeout_ms if timeout_ms is None else timeout_ms
        max_age_ms = self._max_age_ms if max_age_ms is None else max_age_ms

        cached = self.cache.get(max_age_ms)
        if cached is not None:
            log.debug("location_cache_hit", accuracy_m=cached.accuracy_m)
            return cached

        request = self._provider.request_location(
            high_accuracy=True,
            timeout_ms=timeout_ms,
            max_age_ms=max_age_ms,
        )
        try:
            sample = await asyncio.wait_for(request, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            raise LocationError(f"location request timed out after {timeout_ms} ms") from exc

        self.cache.put(sample)
        log.debug("location_acquired",
                  accuracy_m=sample.accuracy_m,
                  lat=round(sample.coordinate.latitude, 6),
                  lon=round(sample.coordinate.longitude, 6))
        return sample

    async def acquire_with_retry(self, max_attempts: int | None = None) -> LocationSample:
        """Try up to ``max_attempts`` times and keep the most precise sample.

        Returns as soon as a sample reaches MIN_ACCURACY_M. Otherwise the best
        sample is returned even if it never got that precise.
        """
        max_attempts = self._max_attempts if max_attempts is None else max_attempts
        max_attempts = max(max_attempts, 1)
        best: LocationSample | None = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                await self.pause()
            try:
                # Only the first attempt may be served from the cache.
                sample = await self.acquire(max_age_ms=None if attempt == 1 else 0)
            except LocationError as exc:
                log.warning("location_attempt_failed", attempt=attempt, error=str(exc))
                continue

            if best is None or sample.accuracy_m < best.accuracy_m:
                best = sample
            if sample.accuracy_m <= self._min_accuracy_m:
                return sample

        if best is None:
            raise LocationError(f"unable to acquire location after {max_attempts} attempts")
        return best
