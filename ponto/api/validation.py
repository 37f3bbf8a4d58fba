"""Clock-in/out validation API endpoints.

This is the thin FastAPI adapter. It parses HTTP requests, converts JSON
readings to internal models, and runs the orchestrator over them.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request, Response

from ponto.core.accuracy import classify
from ponto.core.errors import LocationError, SiteConfigError
from ponto.core.matcher import detect_site_change, match
from ponto.core.models import Coordinate, LocationSample
from ponto.core.orchestrator import describe_site_change
from ponto.provider.feed import Reading, ReadingFeedProvider

router = APIRouter(prefix="/api/v1")

log = structlog.get_logger()


class PayloadError(ValueError):
    """The request body does not describe valid readings."""


def _json_response(content: dict, status_code: int = 200) -> Response:
    return Response(
        content=json.dumps(content),
        status_code=status_code,
        media_type="application/json",
    )


def _number(data: dict, key: str, *, default: float | None = None) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PayloadError(f"{key} must be a number")
    value = float(value)
    if not math.isfinite(value):
        raise PayloadError(f"{key} must be finite")
    return value


def _parse_coordinate(data: dict) -> Coordinate:
    lat = _number(data, "latitude")
    lon = _number(data, "longitude")
    if not -90 <= lat <= 90:
        raise PayloadError(f"latitude {lat} out of range")
    if not -180 <= lon <= 180:
        raise PayloadError(f"longitude {lon} out of range")
    return Coordinate(latitude=lat, longitude=lon)


def _parse_json_reading(data: dict) -> Reading:
    """Parse a device reading: either a fix or a recorded failure."""
    if not isinstance(data, dict):
        raise PayloadError("each reading must be an object")
    if "error" in data:
        return LocationError(str(data["error"]) or "location unavailable")

    accuracy = _number(data, "accuracy_m")
    if accuracy < 0:
        raise PayloadError("accuracy_m must be >= 0")

    if "captured_at_ms" in data:
        try:
            captured_at = datetime.fromtimestamp(
                _number(data, "captured_at_ms") / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise PayloadError("captured_at_ms out of range") from None
    else:
        captured_at = datetime.now(timezone.utc)

    return LocationSample(
        coordinate=_parse_coordinate(data),
        accuracy_m=accuracy,
        captured_at=captured_at,
    )


def _parse_readings(body: dict, max_readings: int) -> list[Reading]:
    raw = body.get("readings")
    if not isinstance(raw, list):
        raise PayloadError("readings must be a list")
    if len(raw) > max_readings:
        raise PayloadError(f"at most {max_readings} readings per request")
    return [_parse_json_reading(r) for r in raw]


def _parse_max_retries(body: dict, default: int) -> int:
    value = body.get("max_retries", default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise PayloadError("max_retries must be a positive integer")
    return value


async def _load_body(request: Request) -> dict | None:
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


@router.post("/validate")
async def validate_location(request: Request) -> Response:
    """Decide whether a clock-in/out is permitted.

    Body:
    - ``readings``: fixes collected by the device, in order, each either
      ``{latitude, longitude, accuracy_m, captured_at_ms?}`` or ``{error}``
    - ``max_retries`` (optional): attempts to run, default from config
    - ``employee_id`` (optional): used for activity stats
    - ``previous_site_id`` (optional): site of the last registration; the
      response then reports whether the employee changed site
    """
    from ponto.main import build_orchestrator, get_config, get_directory, get_stats

    config = get_config()
    stats = get_stats()

    body = await _load_body(request)
    if body is None:
        stats.record_rejected_request()
        return _json_response({"allowed": False, "error": "invalid JSON"}, 400)

    try:
        readings = _parse_readings(body, config.limits.max_readings_per_request)
        max_retries = _parse_max_retries(body, config.validation.max_retries)
    except PayloadError as exc:
        stats.record_rejected_request()
        return _json_response({"allowed": False, "error": str(exc)}, 422)

    try:
        sites = await get_directory().list_sites()
    except SiteConfigError as exc:
        log.error("site_directory_invalid", error=str(exc))
        return _json_response({"allowed": False, "error": "site directory unavailable"}, 503)

    employee_id = str(body.get("employee_id") or "")
    stats.record_readings(len(readings))

    provider = ReadingFeedProvider.closed(readings)
    verdict = await build_orchestrator(provider, replay=True).validate(sites, max_retries)
    stats.record_verdict(verdict.reason, verdict.allowed, employee_id or None)

    result = verdict.to_dict()
    previous_site_id = body.get("previous_site_id")
    if previous_site_id and verdict.sample is not None:
        change = detect_site_change(verdict.sample.coordinate, str(previous_site_id), sites)
        result["site_change"] = change.to_dict()
        moved = describe_site_change(change, verdict)
        if moved is not None:
            result["message"] = moved

    log.info("clock_validation",
             employee=employee_id[:8],
             allowed=verdict.allowed,
             reason=verdict.reason.value,
             readings=len(readings))
    return _json_response(result)


@router.post("/match")
async def match_location(request: Request) -> Response:
    """Match a single reading against the sites, without retries.

    Diagnostic endpoint for the settings screen: shows the accuracy tier,
    the nearest site and the effective radius that would be used.
    """
    from ponto.main import get_directory

    body = await _load_body(request)
    if body is None:
        return _json_response({"error": "invalid JSON"}, 400)

    try:
        coordinate = _parse_coordinate(body)
        accuracy = _number(body, "accuracy_m")
        if accuracy < 0:
            raise PayloadError("accuracy_m must be >= 0")
    except PayloadError as exc:
        return _json_response({"error": str(exc)}, 422)

    try:
        sites = await get_directory().list_sites()
    except SiteConfigError as exc:
        log.error("site_directory_invalid", error=str(exc))
        return _json_response({"error": "site directory unavailable"}, 503)

    result = match(coordinate, sites, accuracy)
    return _json_response({
        "match": result.to_dict(),
        "quality": classify(accuracy).to_dict(),
    })
