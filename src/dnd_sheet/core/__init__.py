"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndSheetError: Base exception for all engine errors.
        RulesEngineError: Rules resolution errors.
        PersistenceError: Persistence collaborator failures.
        ConfigurationError: Configuration-related errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        configure_from_settings: Set up logging from Settings.
        log_context: Bind context to log entries inside a block.
"""

from __future__ import annotations

from dnd_sheet.core.config import (
    PersistenceSettings,
    RulesSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from dnd_sheet.core.exceptions import (
    CharacterNotFoundError,
    CommandError,
    ConfigurationError,
    DndSheetError,
    FormulaError,
    InvalidModifierError,
    PersistenceError,
    RulesEngineError,
    SyncError,
    ValidationError,
)
from dnd_sheet.core.logging import (
    configure_from_settings,
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Base exception
    "DndSheetError",
    # Rules engine exceptions
    "RulesEngineError",
    "InvalidModifierError",
    "FormulaError",
    "CommandError",
    # Persistence exceptions
    "PersistenceError",
    "CharacterNotFoundError",
    "SyncError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "Settings",
    "RulesSettings",
    "PersistenceSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "configure_from_settings",
    "log_context",
]
