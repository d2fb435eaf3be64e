"""Tests for Settings and load_settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from disaster_api import config
from disaster_api.config import Settings, load_settings


@pytest.fixture
def project_root(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path)
    for name in config._ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_defaults():
    s = Settings()
    assert s.cache_backend == "sqlite"
    assert s.cache_default_ttl == 3600
    assert s.cache_sweep_interval == 3600
    assert s.location_cache_ttl == 1800
    assert s.verification_cache_ttl == 3600
    assert s.geocode_cache_ttl == 86400
    assert not s.has_gemini


def test_secrets_are_stripped():
    s = Settings(gemini_api_key="  abc \n")
    assert s.gemini_api_key == "abc"
    assert s.has_gemini


def test_unknown_backend_rejected():
    with pytest.raises(ValidationError):
        Settings(cache_backend="redis")


def test_non_positive_ttl_rejected():
    with pytest.raises(ValidationError):
        Settings(geocode_cache_ttl=0)


def test_load_from_yaml(project_root):
    (project_root / "settings.yaml").write_text("cache_backend: memory\ngeocode_cache_ttl: 600\n")
    s = load_settings()
    assert s.cache_backend == "memory"
    assert s.geocode_cache_ttl == 600


def test_env_overrides_yaml(project_root, monkeypatch):
    (project_root / "settings.yaml").write_text("cache_default_ttl: 100\n")
    monkeypatch.setenv("CACHE_TTL", "900")
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    s = load_settings()
    assert s.cache_default_ttl == 900
    assert s.gemini_api_key == "key"


def test_bad_yaml_uses_defaults(project_root):
    (project_root / "settings.yaml").write_text("cache_backend: [unclosed\n")
    s = load_settings()
    assert s.cache_backend == "sqlite"
