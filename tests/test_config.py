"""Tests for configuration loading."""

from __future__ import annotations

from ponto.config import AppConfig, load_config


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.delenv("PONTO_LOCATION_TIMEOUT_MS", raising=False)
    config = load_config(tmp_path / "missing.yaml")
    assert config.location.timeout_ms == 15000
    assert config.location.max_age_ms == 0
    assert config.location.retry_delay_ms == 1000
    assert config.location.cache_ttl_seconds == 30.0
    assert config.validation.max_retries == 3


def test_yaml_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "location:\n"
        "  timeout_ms: 8000\n"
        "  unknown_key: 1\n"
        "validation:\n"
        "  max_retries: 5\n"
        "sites:\n"
        "  path: /etc/ponto/sites.yaml\n"
    )
    config = load_config(path)
    assert config.location.timeout_ms == 8000
    assert not hasattr(config.location, "unknown_key")
    assert config.validation.max_retries == 5
    assert config.sites.path == "/etc/ponto/sites.yaml"
    assert config.logging.level == AppConfig().logging.level


def test_env_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("location:\n  timeout_ms: 8000\n")
    monkeypatch.setenv("PONTO_LOCATION_TIMEOUT_MS", "20000")
    monkeypatch.setenv("PONTO_VALIDATION_MAX_RETRIES", "2")
    monkeypatch.setenv("PONTO_LOG_FORMAT", "json")

    config = load_config(path)
    assert config.location.timeout_ms == 20000
    assert config.validation.max_retries == 2
    assert config.logging.format == "json"


def test_empty_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    config = load_config(path)
    assert config.server.port == 8000
