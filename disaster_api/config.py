"""Load .env and settings.yaml, expose all configuration."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

log = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

CACHE_BACKENDS = ("sqlite", "memory", "supabase")

# env var -> settings field
_ENV_OVERRIDES = {
    "CACHE_BACKEND": "cache_backend",
    "CACHE_DB_PATH": "cache_db_path",
    "CACHE_TTL": "cache_default_ttl",
    "CACHE_SWEEP_INTERVAL": "cache_sweep_interval",
    "GEMINI_API_KEY": "gemini_api_key",
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_ANON_KEY": "supabase_key",
    "LOG_LEVEL": "log_level",
}


def _load_env() -> None:
    env_path = PROJECT_ROOT / ".env"
    load_dotenv(env_path)


def _load_yaml() -> dict:
    settings_path = PROJECT_ROOT / "settings.yaml"
    if settings_path.exists():
        try:
            with open(settings_path) as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError:
            log.warning("Failed to parse settings.yaml, using defaults")
            return {}
    return {}


class Settings(BaseModel):
    cache_backend: str = "sqlite"
    cache_db_path: str = str(PROJECT_ROOT / "cache.db")
    cache_default_ttl: int = 3600
    cache_sweep_interval: float = 3600

    # Per-caller TTLs in seconds
    location_cache_ttl: int = 1800
    verification_cache_ttl: int = 3600
    geocode_cache_ttl: int = 86400
    social_media_cache_ttl: int = 1800

    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    gemini_text_timeout: float = 10.0
    gemini_vision_timeout: float = 15.0
    image_fetch_timeout: float = 10.0

    supabase_url: str = ""
    supabase_key: str = ""

    log_level: str = "INFO"

    @field_validator("gemini_api_key", "supabase_key", "supabase_url")
    @classmethod
    def strip_secret(cls, v: str) -> str:
        return v.strip()

    @field_validator("cache_backend")
    @classmethod
    def known_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in CACHE_BACKENDS:
            raise ValueError(f"cache_backend must be one of {', '.join(CACHE_BACKENDS)}")
        return v

    @field_validator(
        "cache_default_ttl",
        "cache_sweep_interval",
        "location_cache_ttl",
        "verification_cache_ttl",
        "geocode_cache_ttl",
        "social_media_cache_ttl",
    )
    @classmethod
    def positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key)


def load_settings() -> Settings:
    _load_env()
    raw = _load_yaml()
    for env_name, field in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            raw[field] = value
    return Settings(**raw)
