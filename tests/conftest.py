"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import ponto.main as main_module
from ponto.config import AppConfig
from ponto.core.models import AuthorizedSite, Coordinate
from ponto.core.stats import ValidationStats
from ponto.directory.base import StaticSiteDirectory

HQ = AuthorizedSite(
    id="sede",
    name="Sede",
    coordinate=Coordinate(latitude=-23.561414, longitude=-46.655881),
    nominal_radius_m=100,
)
NORTH_WORKS = AuthorizedSite(
    id="obra-norte",
    name="Obra Norte",
    coordinate=Coordinate(latitude=-23.498772, longitude=-46.624617),
    nominal_radius_m=150,
)
OLD_DEPOT = AuthorizedSite(
    id="deposito-antigo",
    name="Deposito antigo",
    coordinate=Coordinate(latitude=-23.601130, longitude=-46.700450),
    nominal_radius_m=80,
    active=False,
)


class FakeSleep:
    """Records requested pauses instead of sleeping."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sites() -> list[AuthorizedSite]:
    return [HQ, NORTH_WORKS, OLD_DEPOT]


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture(autouse=True)
def _init_server(sites):
    """Initialize server singletons for every test, with in-memory sites."""
    config = AppConfig()
    config.sites.path = ""
    config.location.retry_delay_ms = 0
    config.logging.level = "warning"

    main_module._config = config
    main_module._stats = ValidationStats(active_window_seconds=config.limits.active_window_seconds)
    main_module._directory = StaticSiteDirectory(sites)

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._directory = None


@pytest.fixture
async def client():
    from ponto.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
