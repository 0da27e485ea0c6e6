"""Tests for the arithmetic formula parser."""

from __future__ import annotations

from fractions import Fraction

import pytest

from dnd_sheet.core.exceptions import FormulaError
from dnd_sheet.engine.formula import (
    BinaryOp,
    Variable,
    evaluate,
    evaluate_int,
    parse_formula,
    resolve_amount,
)


class TestParseFormula:
    """Tests for parse_formula."""

    def test_precedence(self) -> None:
        """Test multiplication binds tighter than addition."""
        node = parse_formula("1 + 2 * level")
        assert isinstance(node, BinaryOp)
        assert node.op == "+"
        assert isinstance(node.right, BinaryOp)
        assert node.right.right == Variable("level")

    def test_case_insensitive_names(self) -> None:
        """Test variable names are lower-cased."""
        assert parse_formula("LEVEL") == Variable("level")

    @pytest.mark.parametrize(
        ("expression", "position"),
        [("level +", None), ("(level", None), ("level level", 6), ("2 $ 3", 2)],
    )
    def test_malformed(self, expression: str, position: int | None) -> None:
        """Test malformed formulas raise FormulaError with a position when known."""
        with pytest.raises(FormulaError) as exc_info:
            parse_formula(expression)

        assert exc_info.value.details["expression"] == expression
        assert exc_info.value.details.get("position") == position

    def test_empty(self) -> None:
        """Test an empty formula is rejected."""
        with pytest.raises(FormulaError, match="Empty formula"):
            parse_formula("   ")


class TestEvaluate:
    """Tests for formula evaluation."""

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("5 * level", 15),
            ("(level + 1) / 2", 2),
            ("-level + 10", 7),
            ("level - 2 - 1", 0),
            ("con_mod * 2", 4),
            ("class_level:barbarian + proficiency", 5),
        ],
    )
    def test_evaluate_int(self, expression: str, expected: int) -> None:
        """Test integer evaluation floors the exact result."""
        env = {"level": 3, "con_mod": 2, "class_level:barbarian": 3, "proficiency": 2}
        assert evaluate_int(parse_formula(expression), env) == expected

    def test_exact_arithmetic(self) -> None:
        """Test intermediate results stay rational."""
        assert evaluate(parse_formula("level / 2 * 2"), {"level": 3}) == Fraction(3)

    def test_negative_floors_down(self) -> None:
        """Test flooring of negative results."""
        assert evaluate_int(parse_formula("-level / 2"), {"level": 3}) == -2

    def test_unknown_variable(self) -> None:
        """Test unknown variables raise FormulaError."""
        with pytest.raises(FormulaError, match="Unknown variable"):
            evaluate(parse_formula("wis_mod"), {})

    def test_division_by_zero(self) -> None:
        """Test division by zero raises FormulaError."""
        with pytest.raises(FormulaError, match="Division by zero"):
            evaluate(parse_formula("level / 0"), {"level": 1})


class TestResolveAmount:
    """Tests for the tolerant resolve_amount."""

    def test_valid(self) -> None:
        """Test a valid formula."""
        assert resolve_amount("5 * level", {"level": 4}) == 20

    @pytest.mark.parametrize("expression", ["5 *", "luck", "1 / 0"])
    def test_invalid_is_zero(self, expression: str) -> None:
        """Test malformed formulas evaluate to zero."""
        assert resolve_amount(expression, {"level": 4}) == 0
