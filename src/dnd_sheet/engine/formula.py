"""Arithmetic formulas over character variables.

Resource effects and resource maximums are written as small arithmetic
expressions such as ``"5 * level"`` or ``"(level + 1) / 2"``. They are
parsed once into an expression tree and evaluated against a variable
environment; nothing is ever executed as code.

Grammar::

    expression := term (('+' | '-') term)*
    term       := unary (('*' | '/') unary)*
    unary      := '-' unary | primary
    primary    := NUMBER | NAME | '(' expression ')'

Arithmetic is exact (rational); ``evaluate_int`` floors the final value.

Example:
    >>> evaluate_int(parse_formula("5 * level"), {"level": 3})
    15
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from fractions import Fraction
from functools import lru_cache

from dnd_sheet.core.exceptions import FormulaError
from dnd_sheet.core.logging import get_logger


logger = get_logger(__name__)

_TOKEN_PATTERN = re.compile(
    r"\s*(?:(?P<number>\d+(?:\.\d+)?)|(?P<name>[a-z_][a-z0-9_:]*)|(?P<op>[-+*/()]))"
)


# =============================================================================
# Expression Tree
# =============================================================================


@dataclass(frozen=True)
class Number:
    """Numeric literal."""

    value: Fraction


@dataclass(frozen=True)
class Variable:
    """Named variable resolved from the environment."""

    name: str


@dataclass(frozen=True)
class Negate:
    """Unary minus."""

    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    """Binary arithmetic operation."""

    op: str
    left: Node
    right: Node


Node = Number | Variable | Negate | BinaryOp


# =============================================================================
# Parsing
# =============================================================================


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    position: int


def tokenize(expression: str) -> list[_Token]:
    """Split a formula into tokens.

    Raises:
        FormulaError: If the formula contains an unsupported character.
    """
    text = expression.lower()
    tokens: list[_Token] = []
    position = 0
    while position < len(text):
        if text[position:].strip() == "":
            break
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            offset = position + len(text[position:]) - len(text[position:].lstrip())
            raise FormulaError(
                f"Unexpected character {text[offset]!r}",
                expression=expression,
                position=offset,
            )
        kind = match.lastgroup or "op"
        tokens.append(_Token(kind=kind, text=match.group(kind), position=match.start(kind)))
        position = match.end()
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = tokenize(expression)
        self.index = 0

    def _peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _advance(self) -> _Token:
        token = self._peek()
        if token is None:
            raise FormulaError("Unexpected end of formula", expression=self.expression)
        self.index += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaError("Empty formula", expression=self.expression)
        node = self._expression()
        trailing = self._peek()
        if trailing is not None:
            raise FormulaError(
                f"Unexpected token {trailing.text!r}",
                expression=self.expression,
                position=trailing.position,
            )
        return node

    def _expression(self) -> Node:
        node = self._term()
        while (token := self._peek()) is not None and token.text in ("+", "-"):
            self._advance()
            node = BinaryOp(token.text, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._unary()
        while (token := self._peek()) is not None and token.text in ("*", "/"):
            self._advance()
            node = BinaryOp(token.text, node, self._unary())
        return node

    def _unary(self) -> Node:
        token = self._peek()
        if token is not None and token.text == "-":
            self._advance()
            return Negate(self._unary())
        return self._primary()

    def _primary(self) -> Node:
        token = self._advance()
        if token.kind == "number":
            return Number(Fraction(token.text))
        if token.kind == "name":
            return Variable(token.text)
        if token.text == "(":
            node = self._expression()
            closing = self._advance()
            if closing.text != ")":
                raise FormulaError(
                    "Expected ')'",
                    expression=self.expression,
                    position=closing.position,
                )
            return node
        raise FormulaError(
            f"Unexpected token {token.text!r}",
            expression=self.expression,
            position=token.position,
        )


@lru_cache(maxsize=256)
def parse_formula(expression: str) -> Node:
    """Parse a formula into an expression tree.

    Args:
        expression: Formula text.

    Returns:
        Root node of the expression tree.

    Raises:
        FormulaError: If the formula is malformed.
    """
    return _Parser(expression).parse()


# =============================================================================
# Evaluation
# =============================================================================


def evaluate(node: Node, env: Mapping[str, int]) -> Fraction:
    """Evaluate an expression tree exactly.

    Args:
        node: Root node.
        env: Variable values, keyed by lower-case name.

    Returns:
        The exact rational value.

    Raises:
        FormulaError: On an unknown variable or division by zero.
    """
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Variable):
        if node.name not in env:
            raise FormulaError(f"Unknown variable {node.name!r}")
        return Fraction(env[node.name])
    if isinstance(node, Negate):
        return -evaluate(node.operand, env)
    left = evaluate(node.left, env)
    right = evaluate(node.right, env)
    if node.op == "+":
        return left + right
    if node.op == "-":
        return left - right
    if node.op == "*":
        return left * right
    if right == 0:
        raise FormulaError("Division by zero")
    return left / right


def evaluate_int(node: Node, env: Mapping[str, int]) -> int:
    """Evaluate an expression tree and floor the result."""
    return math.floor(evaluate(node, env))


def resolve_amount(expression: str, env: Mapping[str, int]) -> int:
    """Evaluate a formula, treating any malformed formula as zero.

    Args:
        expression: Formula text.
        env: Variable values.

    Returns:
        The floored value, or 0 when the formula cannot be evaluated.
    """
    try:
        return evaluate_int(parse_formula(expression), env)
    except FormulaError as exc:
        logger.warning("Formula evaluated as zero", formula=expression, error=exc.message)
        return 0


__all__ = [
    "Number",
    "Variable",
    "Negate",
    "BinaryOp",
    "Node",
    "tokenize",
    "parse_formula",
    "evaluate",
    "evaluate_int",
    "resolve_amount",
]
