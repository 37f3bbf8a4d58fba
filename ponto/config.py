"""Service configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: PONTO_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class LocationConfig:
    timeout_ms: int = 15_000
    max_age_ms: int = 0
    max_attempts: int = 3
    retry_delay_ms: int = 1_000
    cache_ttl_seconds: float = 30.0


@dataclass
class ValidationConfig:
    max_retries: int = 3


@dataclass
class SitesConfig:
    path: str = "sites.yaml"


@dataclass
class LimitsConfig:
    max_readings_per_request: int = 10
    active_window_seconds: float = 120.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"
    file: str = ""


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    sites: SitesConfig = field(default_factory=SitesConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "PONTO_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "PONTO_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "PONTO_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "PONTO_LOCATION_TIMEOUT_MS": lambda v: setattr(config.location, "timeout_ms", int(v)),
        "PONTO_LOCATION_MAX_AGE_MS": lambda v: setattr(config.location, "max_age_ms", int(v)),
        "PONTO_LOCATION_MAX_ATTEMPTS": lambda v: setattr(config.location, "max_attempts", int(v)),
        "PONTO_LOCATION_RETRY_DELAY_MS": lambda v: setattr(config.location, "retry_delay_ms", int(v)),
        "PONTO_LOCATION_CACHE_TTL": lambda v: setattr(config.location, "cache_ttl_seconds", float(v)),
        "PONTO_VALIDATION_MAX_RETRIES": lambda v: setattr(config.validation, "max_retries", int(v)),
        "PONTO_SITES_PATH": lambda v: setattr(config.sites, "path", v),
        "PONTO_LIMITS_MAX_READINGS": lambda v: setattr(config.limits, "max_readings_per_request", int(v)),
        "PONTO_LIMITS_ACTIVE_WINDOW": lambda v: setattr(config.limits, "active_window_seconds", float(v)),
        "PONTO_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "PONTO_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
        "PONTO_LOG_FILE": lambda v: setattr(config.logging, "file", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path(os.environ.get("PONTO_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in fields(config):
            values = raw.get(section.name)
            if not isinstance(values, dict):
                continue
            target = getattr(config, section.name)
            for k, v in values.items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
