"""
Amount Expression Service - evaluate what the user typed in the amount field.

Responsibilities:
- Parse simple arithmetic (+ - * / and parentheses) over decimal numbers
- Round the result to cents and render it without trailing zeros
- Classify the amount as income (negative) or expense
"""
import re
from dataclasses import dataclass
from decimal import Decimal, DecimalException
from typing import List, Optional, Tuple

from expense_form.utils.decimals import format_decimal, round_to_cents

INVALID_EXPRESSION = "Invalid Expression"

_TOKEN_RE = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(.))")


class EvaluationError(ValueError):
    """Raised when an amount expression cannot be evaluated."""


@dataclass(frozen=True)
class AmountPreview:
    evaluated: str
    is_income: Optional[bool]  # None leaves the income flag unchanged

    @property
    def is_valid(self) -> bool:
        return self.evaluated != INVALID_EXPRESSION


class _Parser:
    """
    Recursive descent over the grammar:

        expr   := term (('+' | '-') term)*
        term   := factor (('*' | '/') factor)*
        factor := ('+' | '-') factor | NUMBER | '(' expr ')'
    """

    def __init__(self, tokens: List[Tuple[str, str]]):
        self.tokens = tokens
        self.pos = 0

    def parse(self) -> Decimal:
        if not self.tokens:
            raise EvaluationError("empty expression")
        value = self._expr()
        if self.pos != len(self.tokens):
            raise EvaluationError(f"unexpected token {self.tokens[self.pos][1]!r}")
        return value

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos][1]
        return None

    def _next(self) -> Tuple[str, str]:
        if self.pos >= len(self.tokens):
            raise EvaluationError("unexpected end of expression")
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _expr(self) -> Decimal:
        value = self._term()
        while self._peek() in ('+', '-'):
            _, op = self._next()
            rhs = self._term()
            value = value + rhs if op == '+' else value - rhs
        return value

    def _term(self) -> Decimal:
        value = self._factor()
        while self._peek() in ('*', '/'):
            _, op = self._next()
            rhs = self._factor()
            if op == '*':
                value = value * rhs
            else:
                if rhs == 0:
                    raise EvaluationError("division by zero")
                value = value / rhs
        return value

    def _factor(self) -> Decimal:
        kind, text = self._next()
        if kind == 'num':
            return Decimal(text)
        if text == '-':
            return -self._factor()
        if text == '+':
            return self._factor()
        if text == '(':
            value = self._expr()
            kind, text = self._next()
            if text != ')':
                raise EvaluationError("missing closing parenthesis")
            return value
        raise EvaluationError(f"unexpected token {text!r}")


class AmountExpressionEvaluator:
    """Evaluator for the main amount field."""

    OPERATORS = frozenset('+-*/()')

    @classmethod
    def tokenize(cls, raw: str) -> List[Tuple[str, str]]:
        tokens = []
        for number, other in _TOKEN_RE.findall(raw.rstrip()):
            if number:
                tokens.append(('num', number))
            elif other in cls.OPERATORS:
                tokens.append(('op', other))
            else:
                raise EvaluationError(f"unsupported token {other!r}")
        return tokens

    @classmethod
    def evaluate_decimal(cls, raw: str) -> Decimal:
        """Evaluate and round to cents. Raises EvaluationError."""
        try:
            value = _Parser(cls.tokenize(raw)).parse()
            return round_to_cents(value)
        except DecimalException as e:
            raise EvaluationError(str(e)) from e

    @classmethod
    def evaluate(cls, raw: str) -> str:
        """
        Evaluate an amount expression into its canonical display string.

        Args:
            raw: Text as typed, e.g. "12.50+3*2"

        Returns:
            Rounded value without trailing zeros, e.g. "18.5"

        Raises:
            EvaluationError: malformed expression, unsupported token or
            division by zero
        """
        return format_decimal(cls.evaluate_decimal(raw))

    @classmethod
    def preview(cls, raw: str) -> AmountPreview:
        """Display-only preview shown next to the amount field."""
        if raw == '':
            return AmountPreview(evaluated="0", is_income=None)
        try:
            value = cls.evaluate_decimal(raw)
        except EvaluationError:
            return AmountPreview(evaluated=INVALID_EXPRESSION, is_income=None)
        return AmountPreview(evaluated=format_decimal(value), is_income=value < 0)

    @classmethod
    def is_income(cls, raw: str) -> bool:
        """True when `raw` evaluates to a negative amount."""
        preview = cls.preview(raw)
        return bool(preview.is_income)
