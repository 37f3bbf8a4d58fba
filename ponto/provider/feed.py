"""In-process asyncio feed implementation of LocationProvider.

The clock-in client collects GPS readings on the device and pushes them
here; each provider request consumes the next one. A reading can also be a
``LocationError`` recorded by the device for a failed fix.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Union

from ponto.core.errors import LocationError
from ponto.core.models import LocationSample

Reading = Union[LocationSample, LocationError]

_CLOSED = object()


class ReadingFeedProvider:
    """LocationProvider backed by asyncio.Queue. Zero dependencies."""

    def __init__(self, readings: Iterable[Reading] = (), max_size: int = 0) -> None:
        self._queue: asyncio.Queue[Reading | object] = asyncio.Queue(maxsize=max_size)
        self.requests = 0
        for reading in readings:
            self._queue.put_nowait(reading)

    @classmethod
    def closed(cls, readings: Iterable[Reading]) -> ReadingFeedProvider:
        """A feed holding exactly ``readings``; requests past the end fail."""
        feed = cls(readings)
        feed.close()
        return feed

    async def put(self, reading: Reading) -> None:
        await self._queue.put(reading)

    def close(self) -> None:
        """Mark the end of the feed. Pending and later requests fail."""
        self._queue.put_nowait(_CLOSED)

    def qsize(self) -> int:
        return self._queue.qsize()

    async def request_location(
        self,
        *,
        high_accuracy: bool = True,
        timeout_ms: int = 15_000,
        max_age_ms: int = 0,
    ) -> LocationSample:
        self.requests += 1
        reading = await self._queue.get()
        if reading is _CLOSED:
            # Keep the marker so every later request fails the same way.
            self._queue.put_nowait(_CLOSED)
            raise LocationError("no location provider available")
        if isinstance(reading, LocationError):
            raise reading
        return reading
