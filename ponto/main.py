"""Ponto service — main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, provider, directory, and API layers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ponto.api.monitoring import router as monitoring_router
from ponto.api.sites import router as sites_router
from ponto.api.validation import router as validation_router
from ponto.config import AppConfig, load_config
from ponto.core.acquirer import LocationAcquirer, LocationCache
from ponto.core.orchestrator import ValidationOrchestrator
from ponto.core.stats import ValidationStats
from ponto.directory.base import SiteDirectory, StaticSiteDirectory
from ponto.directory.file_directory import FileSiteDirectory
from ponto.provider.base import LocationProvider

log = structlog.get_logger()

# Module-level singletons (set during startup)
_stats: ValidationStats | None = None
_config: AppConfig | None = None
_directory: SiteDirectory | None = None


def get_stats() -> ValidationStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def get_directory() -> SiteDirectory:
    assert _directory is not None, "Server not initialized"
    return _directory


def build_orchestrator(
    provider: LocationProvider,
    *,
    replay: bool = False,
) -> ValidationOrchestrator:
    """Create an orchestrator for one validation over ``provider``.

    With ``replay`` the provider holds readings the device already collected
    and spaced out, so attempts run back to back and never reuse a cached fix.
    """
    config = get_config()
    acquirer = LocationAcquirer(
        provider,
        cache=LocationCache(ttl_seconds=config.location.cache_ttl_seconds),
        timeout_ms=config.location.timeout_ms,
        max_age_ms=0 if replay else config.location.max_age_ms,
        max_attempts=config.location.max_attempts,
        retry_delay_ms=0 if replay else config.location.retry_delay_ms,
    )
    return ValidationOrchestrator(acquirer, stats=get_stats())


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=not config.logging.file))

    logger_factory = None
    if config.logging.file:
        logger_factory = structlog.WriteLoggerFactory(file=open(config.logging.file, "a"))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
        logger_factory=logger_factory or structlog.PrintLoggerFactory(),
    )


def _build_directory(config: AppConfig) -> SiteDirectory:
    if not config.sites.path:
        return StaticSiteDirectory()
    directory = FileSiteDirectory(config.sites.path)
    directory.reload()
    return directory


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _stats, _config, _directory

    _config = load_config()
    _setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             sites_path=_config.sites.path,
             max_retries=_config.validation.max_retries)

    _stats = ValidationStats(active_window_seconds=_config.limits.active_window_seconds)
    _directory = _build_directory(_config)

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    log.info("server_stopped")


app = FastAPI(
    title="Ponto",
    description="Geolocation attendance validation service",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(validation_router)
app.include_router(sites_router)
app.include_router(monitoring_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    config = load_config()
    uvicorn.run("ponto.main:app", host=config.server.host, port=config.server.port)
