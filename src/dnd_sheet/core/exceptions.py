"""Custom exception hierarchy for the character sheet engine.

All exceptions inherit from DndSheetError so callers can handle every
engine failure at one boundary while keeping domain-specific context.

Rule violations (attunement cap, insufficient funds, exhausted resources)
are not raised. They are reported as failed transition results and the
character snapshot is left untouched. Exceptions are reserved for
programming errors, unparsable formulas and persistence failures.

Example:
    >>> from dnd_sheet.core.exceptions import FormulaError
    >>> raise FormulaError("Unexpected token", expression="level +", position=7)
"""

from __future__ import annotations

from typing import Any


class DndSheetError(Exception):
    """Base exception for all character sheet errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Rules Engine Exceptions
# =============================================================================


class RulesEngineError(DndSheetError):
    """Base exception for rules resolution and state transition errors."""


class InvalidModifierError(RulesEngineError):
    """Raised when a modifier payload cannot be interpreted.

    The loading boundary catches this and drops the modifier, so it only
    escapes when a caller validates a single modifier explicitly.
    """

    def __init__(
        self,
        message: str,
        *,
        modifier_type: str | None = None,
        target: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid modifier error with modifier context.

        Args:
            message: Human-readable error description.
            modifier_type: The ``type`` tag of the rejected modifier.
            target: The target the modifier pointed at.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if modifier_type:
            combined_details["modifier_type"] = modifier_type
        if target:
            combined_details["target"] = target
        super().__init__(message, details=combined_details)


class FormulaError(RulesEngineError):
    """Raised when an arithmetic formula cannot be tokenized or parsed."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        position: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with expression context.

        Args:
            message: Human-readable error description.
            expression: The formula text that failed.
            position: Character offset where parsing failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        if position is not None:
            combined_details["position"] = position
        super().__init__(message, details=combined_details)


class CommandError(RulesEngineError):
    """Raised when a command has no registered handler."""

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize command error.

        Args:
            message: Human-readable error description.
            command: The command tag that could not be dispatched.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if command:
            combined_details["command"] = command
        super().__init__(message, details=combined_details)


# =============================================================================
# Persistence Exceptions
# =============================================================================


class PersistenceError(DndSheetError):
    """Raised when the persistence collaborator rejects or fails a write."""

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize persistence error with write context.

        Args:
            message: Human-readable error description.
            character_id: Character the write targeted.
            operation: Name of the gateway operation that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


class CharacterNotFoundError(PersistenceError):
    """Raised when a character id has no stored snapshot."""


class SyncError(PersistenceError):
    """Raised when the sync adapter cannot reconcile local and remote state."""


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(DndSheetError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(DndSheetError):
    """Raised when caller-supplied data fails validation."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


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
]
