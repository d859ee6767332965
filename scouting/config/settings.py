import logging
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Content / data layout (relative to the site root)
    teams_dir: Path = Field(
        Path("src/content/teams"), description="One JSON file per team."
    )
    tournaments_dir: Path = Field(
        Path("src/content/tournaments"), description="One JSON file per tournament."
    )
    history_dir: Path = Field(
        Path("src/data/mhr-history"), description="Per-slug rating/rank history."
    )
    snapshot_dir: Path = Field(
        Path("src/data/mhr-snapshot"), description="Latest ranks for page fallbacks."
    )
    schedule_dir: Path = Field(
        Path("src/data/auto-schedule"), description="Generated per-team schedules."
    )
    schedule_sources_file: Path = Field(
        Path("config/schedule-sources.json"),
        description="Map of team slug -> calendar sources to try in order.",
    )
    debug_dir: Path = Field(Path(".debug"), description="Extracted text dumps.")
    dump_dir: Path = Field(Path("tmp/mhr-dumps"), description="Raw HTML dumps.")

    # Calendar
    time_zone: str = Field(
        "America/Chicago", description="Zone used for 'today' and game times."
    )
    history_gated_weekday: int = Field(
        2,
        ge=0,
        le=6,
        description="Weekday (Monday=0) MHR publishes new numbers; history always records.",
    )

    # Refresh policy
    stale_days: float = Field(
        7, gt=0, description="Cached opponents older than this are refetched."
    )
    request_delay_min_ms: int = Field(300, ge=0)
    request_delay_max_ms: int = Field(1200, ge=0)

    # HTTP
    request_timeout_s: float = Field(30.0, gt=0)
    request_max_attempts: int = Field(3, ge=1)
    user_agent: str = Field(
        "Scouting-Portal/1.0 (+https://github.com/ChrisHammond/2025-26-12UA1-Scouting)"
    )
    mhr_base_url: str = Field("https://myhockeyrankings.com/team_info.php")
    mhr_default_year: Optional[int] = Field(
        None, description="Season year for id-only teams (defaults to current year)."
    )

    # Browser rendering
    render_enabled: bool = True
    render_timeout_s: float = Field(60.0, gt=0)
    render_settle_ms: int = Field(1200, ge=0)
    render_poll_timeout_ms: int = Field(2000, ge=0)
    render_user_agent: str = Field(
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122 Safari/537.36"
    )

    # Parsing
    level_pattern: str = Field(
        r"\d{1,2}U", description="Regex for the age-bracket token, e.g. 12U."
    )

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_prefix="SCOUTING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        if settings.request_delay_max_ms < settings.request_delay_min_ms:
            settings.request_delay_max_ms = settings.request_delay_min_ms
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()
