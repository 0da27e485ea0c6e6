"""Configuration management for the character sheet engine.

Settings are loaded with pydantic-settings from environment variables and
an optional ``.env`` file. Rules tunables (attunement cap, ability score
ceiling, electrum handling) live next to persistence settings so a
table can adjust house rules without code changes.

Example:
    >>> from dnd_sheet.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.rules.max_attuned_items
    3

Environment Variables:
    DND_SHEET_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DND_SHEET_DATABASE_PATH: Path to the SQLite character store
    DND_SHEET_WRITE_ATTEMPTS: Attempts per persistence write before reverting
    DND_SHEET_RULES_MAX_ATTUNED_ITEMS: Attunement cap
    DND_SHEET_RULES_USE_ELECTRUM: Use electrum when making change
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_sheet.core.constants import (
    CARRY_CAPACITY_MULTIPLIER,
    MAX_ATTUNED_ITEMS,
    MAX_EXHAUSTION,
    PC_ABILITY_SCORE_CAP,
)
from dnd_sheet.core.exceptions import ConfigurationError


class RulesSettings(BaseSettings):
    """House-rule tunables consumed by the rules engine.

    Attributes:
        max_attuned_items: Maximum number of attuned magic items.
        ability_score_cap: Ceiling for scores raised with ability points.
        max_exhaustion: Highest exhaustion level.
        carry_capacity_multiplier: Pounds of carrying capacity per STR point.
        use_electrum: Make change in electrum instead of silver.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SHEET_RULES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_attuned_items: int = Field(
        default=MAX_ATTUNED_ITEMS,
        ge=0,
        le=10,
        description="Maximum attuned magic items",
    )
    ability_score_cap: int = Field(
        default=PC_ABILITY_SCORE_CAP,
        ge=1,
        le=30,
        description="Ceiling for ability point spending",
    )
    max_exhaustion: int = Field(
        default=MAX_EXHAUSTION,
        ge=1,
        le=10,
        description="Highest exhaustion level",
    )
    carry_capacity_multiplier: int = Field(
        default=CARRY_CAPACITY_MULTIPLIER,
        ge=1,
        description="Carrying capacity per point of Strength",
    )
    use_electrum: bool = Field(
        default=False,
        description="Use electrum pieces when converting currency",
    )


class PersistenceSettings(BaseSettings):
    """Configuration for the persistence collaborator and sync adapter.

    Attributes:
        database_path: Path to the SQLite database file.
        write_attempts: Attempts per write before the local change is reverted.
        retry_wait_min: Minimum seconds between write attempts.
        retry_wait_max: Maximum seconds between write attempts.
        sync_workers: Worker threads used for background writes.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SHEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/dnd_sheet.db"),
        description="Path to SQLite database",
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per persistence write",
    )
    retry_wait_min: float = Field(
        default=0.1,
        ge=0,
        le=30,
        description="Minimum wait between write attempts",
    )
    retry_wait_max: float = Field(
        default=2.0,
        ge=0,
        le=60,
        description="Maximum wait between write attempts",
    )
    sync_workers: int = Field(
        default=1,
        ge=1,
        le=16,
        description="Background write worker threads",
    )

    @model_validator(mode="after")
    def validate_retry_window(self) -> "PersistenceSettings":
        """Ensure the retry wait window is ordered.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If retry_wait_min exceeds retry_wait_max.
        """
        if self.retry_wait_min > self.retry_wait_max:
            raise ConfigurationError(
                f"retry_wait_min ({self.retry_wait_min}) must not exceed "
                f"retry_wait_max ({self.retry_wait_max})",
                config_key="retry_wait_min",
            )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Render logs as JSON lines.
        rules: Rules engine tunables.
        persistence: Persistence and sync settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SHEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="D&D Character Sheet Engine",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON",
    )

    rules: RulesSettings = Field(default_factory=RulesSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "RulesSettings",
    "PersistenceSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
