"""
Configuration settings for the ingestion and synchronization engine.

This module defines the Settings dataclass with every tunable of the system.
Values are read from the environment (after loading .env) when the class is
created, and can be overridden per instance, which is what the tests do.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_list(name: str, default: str) -> list[str]:
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


@dataclass
class Settings:
    """Configuration for the ingestion engine"""

    # Storage
    database_url: Optional[str] = os.getenv("DATABASE_URL", "sqlite:///data/podsync.db")

    # Summarization (OpenAI)
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")

    # Shared secret for the sweep trigger endpoint
    cron_secret: Optional[str] = os.getenv("CRON_SECRET")

    # Item pipeline
    min_transcript_length: int = _env_int("MIN_TRANSCRIPT_LENGTH", 100)
    transcript_excerpt_chars: int = _env_int("TRANSCRIPT_EXCERPT_CHARS", 30000)
    subtitle_languages: list[str] = field(
        default_factory=lambda: _env_list("SUBTITLE_LANGUAGES", "en,en-US,en-GB")
    )

    # Per-call timeouts (seconds)
    list_timeout: float = _env_float("LIST_TIMEOUT_SECONDS", 300.0)
    metadata_timeout: float = _env_float("METADATA_TIMEOUT_SECONDS", 30.0)
    transcript_timeout: float = _env_float("TRANSCRIPT_TIMEOUT_SECONDS", 120.0)
    summarize_timeout: float = _env_float("SUMMARIZE_TIMEOUT_SECONDS", 120.0)

    # Batch orchestration
    item_delay_seconds: float = _env_float("ITEM_DELAY_SECONDS", 1.0)
    default_max_items: int = _env_int("DEFAULT_MAX_ITEMS", 50)

    # Job registry
    job_results_limit: int = _env_int("JOB_RESULTS_LIMIT", 10)
    job_ttl_seconds: float = _env_float("JOB_TTL_SECONDS", 3600.0)
    job_capacity: int = _env_int("JOB_CAPACITY", 200)

    # Sync checker: listed items read for the newest remote date. Uploads tabs
    # list newest first; raise for sources that are playlists.
    sync_date_window: int = _env_int("SYNC_DATE_WINDOW", 1)

    # Scheduled sweep
    sweep_recent_window: int = _env_int("SWEEP_RECENT_WINDOW", 15)
    sweep_max_items_per_source: int = _env_int("SWEEP_MAX_ITEMS_PER_SOURCE", 10)
    sweep_enrich_limit: int = _env_int("SWEEP_ENRICH_LIMIT", 5)
    sweep_interval_minutes: int = _env_int("SWEEP_INTERVAL_MINUTES", 0)


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
