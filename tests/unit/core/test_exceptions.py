"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestDndSheetError:
    """Tests for the base DndSheetError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = DndSheetError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = DndSheetError("Test error", details={"key": "value", "count": 42})
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(DndSheetError("Test", details={"x": 1}))
        assert "DndSheetError" in repr_str
        assert "Test" in repr_str


class TestRulesEngineExceptions:
    """Tests for rules engine exceptions."""

    def test_formula_error_context(self) -> None:
        """Test FormulaError records expression and position."""
        exc = FormulaError("Unexpected token", expression="level +", position=7)
        assert exc.details == {"expression": "level +", "position": 7}
        assert isinstance(exc, RulesEngineError)

    def test_formula_error_position_zero(self) -> None:
        """Test a zero position is still recorded."""
        exc = FormulaError("Bad", expression="?", position=0)
        assert exc.details["position"] == 0

    def test_invalid_modifier_error(self) -> None:
        """Test InvalidModifierError records modifier type and target."""
        exc = InvalidModifierError("Bad modifier", modifier_type="bonus", target="str")
        assert exc.details == {"modifier_type": "bonus", "target": "str"}

    def test_command_error(self) -> None:
        """Test CommandError records the command tag."""
        exc = CommandError("No handler", command="fly")
        assert exc.details["command"] == "fly"


class TestPersistenceExceptions:
    """Tests for persistence exceptions."""

    def test_persistence_error_context(self) -> None:
        """Test PersistenceError records character and operation."""
        exc = PersistenceError("Write failed", character_id="c1", operation="write_fields")
        assert exc.details == {"character_id": "c1", "operation": "write_fields"}

    @pytest.mark.parametrize("exc_class", [CharacterNotFoundError, SyncError])
    def test_subclasses(self, exc_class: type[PersistenceError]) -> None:
        """Test persistence subclasses are caught as PersistenceError."""
        with pytest.raises(PersistenceError):
            raise exc_class("boom", character_id="c1")


class TestValidationExceptions:
    """Tests for configuration and validation exceptions."""

    def test_configuration_error(self) -> None:
        """Test ConfigurationError records the config key."""
        exc = ConfigurationError("Bad value", config_key="write_attempts")
        assert exc.details["config_key"] == "write_attempts"

    def test_validation_error(self) -> None:
        """Test ValidationError records field and value."""
        exc = ValidationError("Invalid", field_name="command", invalid_value="fly")
        assert exc.details == {"field_name": "command", "invalid_value": "fly"}
        assert isinstance(exc, DndSheetError)
