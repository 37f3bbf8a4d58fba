"""Tests for the validation, site and monitoring API endpoints."""

from __future__ import annotations

import json
import time

import pytest

import ponto.main as main_module
from ponto.directory.base import StaticSiteDirectory

from conftest import HQ

HQ_LAT = HQ.coordinate.latitude
HQ_LON = HQ.coordinate.longitude


async def post_json(client, path: str, payload: dict):
    return await client.post(
        path,
        content=json.dumps(payload),
        headers={"content-type": "application/json"},
    )


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["active_sites"] == 2
    assert "uptime_seconds" in data


@pytest.mark.asyncio
async def test_stats_empty(client):
    resp = await client.get("/api/v1/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["validations"] == 0
    assert data["active_employees"]["total"] == 0


@pytest.mark.asyncio
async def test_config_endpoint(client):
    resp = await client.get("/api/v1/config")
    assert resp.status_code == 200
    data = resp.json()
    assert data["timeout_ms"] == 15000
    assert data["max_attempts"] == 3
    assert data["high_accuracy"] is True
    assert data["immediate_accept_accuracy_m"] == 30.0


@pytest.mark.asyncio
async def test_sites_lists_active_only(client):
    resp = await client.get("/api/v1/sites")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 2
    assert {s["id"] for s in data["sites"]} == {"sede", "obra-norte"}

    resp = await client.get("/api/v1/sites", params={"include_inactive": "true"})
    assert resp.json()["total"] == 3


@pytest.mark.asyncio
async def test_validate_precise_reading_at_site(client):
    payload = {
        "employee_id": "emp-0001",
        "readings": [
            {"latitude": HQ_LAT, "longitude": HQ_LON, "accuracy_m": 8,
             "captured_at_ms": int(time.time() * 1000)},
        ],
    }
    resp = await post_json(client, "/api/v1/validate", payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["allowed"] is True
    assert data["reason"] == "Matched"
    assert data["match"]["site"]["id"] == "sede"
    assert data["sample"]["accuracy_m"] == 8

    stats = (await client.get("/api/v1/stats")).json()
    assert stats["validations"] == 1
    assert stats["allowed"] == 1
    assert stats["by_reason"]["Matched"] == 1
    assert stats["active_employees"]["total"] == 1


@pytest.mark.asyncio
async def test_validate_far_away_is_rejected(client):
    # About 5.5 km south of HQ.
    reading = {"latitude": HQ_LAT - 0.05, "longitude": HQ_LON, "accuracy_m": 20}
    resp = await post_json(client, "/api/v1/validate", {"readings": [reading] * 3})
    assert resp.status_code == 200
    data = resp.json()
    assert data["allowed"] is False
    assert data["reason"] == "BestEffortRejected"
    assert "Sede" in data["message"]
    assert data["match"]["distance_m"] > 5000


@pytest.mark.asyncio
async def test_validate_device_errors(client):
    payload = {"readings": [{"error": "permission denied"}, {"error": "timeout"}]}
    resp = await post_json(client, "/api/v1/validate", payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["allowed"] is False
    assert data["reason"] == "LocationUnavailable"
    assert data["sample"] is None


@pytest.mark.asyncio
async def test_validate_without_sites(client):
    main_module._directory = StaticSiteDirectory([])
    reading = {"latitude": HQ_LAT, "longitude": HQ_LON, "accuracy_m": 5}
    resp = await post_json(client, "/api/v1/validate", {"readings": [reading]})
    data = resp.json()
    assert data["allowed"] is False
    assert data["reason"] == "NoSitesConfigured"


@pytest.mark.asyncio
async def test_validate_reports_site_change(client):
    reading = {"latitude": HQ_LAT, "longitude": HQ_LON, "accuracy_m": 5}
    payload = {"readings": [reading], "previous_site_id": "obra-norte"}
    resp = await post_json(client, "/api/v1/validate", payload)
    data = resp.json()
    assert data["allowed"] is True
    assert data["site_change"] == {"changed": True, "previous_site": "Obra Norte"}
    assert data["message"] == "Location changed from Obra Norte to Sede"


@pytest.mark.asyncio
async def test_validate_same_site_keeps_verdict_message(client):
    reading = {"latitude": HQ_LAT, "longitude": HQ_LON, "accuracy_m": 5}
    payload = {"readings": [reading], "previous_site_id": "sede"}
    data = (await post_json(client, "/api/v1/validate", payload)).json()
    assert data["site_change"] == {"changed": False, "previous_site": "Sede"}
    assert data["message"].startswith("Location authorized at Sede")


@pytest.mark.asyncio
async def test_validate_does_not_pause_between_submitted_readings(client):
    # Production delay: the device already spaced its readings out.
    main_module._config.location.retry_delay_ms = 1000
    reading = {"latitude": HQ_LAT - 0.05, "longitude": HQ_LON, "accuracy_m": 20}

    start = time.monotonic()
    resp = await post_json(client, "/api/v1/validate", {"readings": [reading] * 3})
    elapsed = time.monotonic() - start

    assert resp.json()["reason"] == "BestEffortRejected"
    assert elapsed < 0.5


@pytest.mark.asyncio
async def test_validate_uses_every_submitted_reading_with_cache_enabled(client):
    main_module._config.location.max_age_ms = 10_000
    far = {"latitude": HQ_LAT - 0.05, "longitude": HQ_LON, "accuracy_m": 20}
    at_hq = {"latitude": HQ_LAT, "longitude": HQ_LON, "accuracy_m": 5}

    data = (await post_json(client, "/api/v1/validate", {"readings": [far, at_hq]})).json()
    assert data["allowed"] is True
    assert data["reason"] == "Matched"
    assert data["sample"]["accuracy_m"] == 5


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"readings": "nope"},
        {"readings": [{"latitude": 95.0, "longitude": 0.0, "accuracy_m": 5}]},
        {"readings": [{"latitude": 0.0, "longitude": 0.0, "accuracy_m": -1}]},
        {"readings": [{"latitude": "0", "longitude": 0.0, "accuracy_m": 5}]},
        {"readings": [{"latitude": 0.0, "longitude": 0.0}]},
        {"readings": [], "max_retries": 0},
        {"readings": [{"latitude": 0.0, "longitude": 0.0, "accuracy_m": 5}] * 11},
    ],
)
async def test_validate_rejects_malformed_payload(client, payload):
    resp = await post_json(client, "/api/v1/validate", payload)
    assert resp.status_code == 422
    assert resp.json()["allowed"] is False

    stats = (await client.get("/api/v1/stats")).json()
    assert stats["requests_rejected"] == 1


@pytest.mark.asyncio
async def test_validate_invalid_json(client):
    resp = await client.post(
        "/api/v1/validate",
        content=b"not json at all",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_match_endpoint(client):
    payload = {"latitude": HQ_LAT, "longitude": HQ_LON, "accuracy_m": 150}
    resp = await post_json(client, "/api/v1/match", payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["match"]["matched"] is True
    assert data["match"]["effective_radius_m"] == 390
    assert data["quality"]["tier"] == "Low"
    assert data["quality"]["confidence"] == 0.6


@pytest.mark.asyncio
async def test_match_endpoint_rejects_bad_coordinate(client):
    payload = {"latitude": 0.0, "longitude": 200.0, "accuracy_m": 10}
    resp = await post_json(client, "/api/v1/match", payload)
    assert resp.status_code == 422
