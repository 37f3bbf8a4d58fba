"""Health check and monitoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from ponto.core.adaptive import MIN_ADAPTIVE_RADIUS_M
from ponto.core.errors import SiteConfigError
from ponto.core.orchestrator import BEST_EFFORT_ACCURACY_M, IMMEDIATE_ACCEPT_ACCURACY_M

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from ponto.main import get_directory, get_stats

    stats = get_stats()
    try:
        sites = await get_directory().list_sites()
        directory_ok = True
    except SiteConfigError:
        sites = []
        directory_ok = False

    snapshot = stats.snapshot()
    return {
        "status": "ok" if directory_ok else "degraded",
        "version": "0.1.0",
        "uptime_seconds": snapshot["uptime_seconds"],
        "site_directory_ok": directory_ok,
        "active_sites": sum(1 for s in sites if s.active),
    }


@router.get("/stats")
async def stats() -> dict:
    """Detailed validation statistics including active employee counts.

    The ``active_employees`` section shows:
    - ``total``: employees who validated in the last N seconds
    - ``allowed``: of those, how many were last allowed to clock
    - ``denied``: how many were last denied
    - ``window_seconds``: the time window used for "active" calculation
    """
    from ponto.main import get_stats

    return get_stats().snapshot()


@router.get("/config")
async def get_client_config() -> dict:
    """Configuration endpoint for the clock-in app.

    The app calls this before collecting readings so it requests them with
    the same timeout and attempt count the server will use.
    """
    from ponto.main import get_config

    config = get_config()
    return {
        "high_accuracy": True,
        "timeout_ms": config.location.timeout_ms,
        "max_age_ms": config.location.max_age_ms,
        "max_attempts": config.validation.max_retries,
        "retry_delay_ms": config.location.retry_delay_ms,
        "max_readings_per_request": config.limits.max_readings_per_request,
        "immediate_accept_accuracy_m": IMMEDIATE_ACCEPT_ACCURACY_M,
        "best_effort_accuracy_m": BEST_EFFORT_ACCURACY_M,
        "min_adaptive_radius_m": MIN_ADAPTIVE_RADIUS_M,
    }
