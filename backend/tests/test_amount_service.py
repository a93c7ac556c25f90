from decimal import localcontext

import pytest

from expense_form.core.amount_service import (
    INVALID_EXPRESSION, AmountExpressionEvaluator, EvaluationError,
)


@pytest.mark.parametrize("raw, expected", [
    ("2+2", "4"),
    ("10/4", "2.5"),
    ("12.50+3*2", "18.5"),
    ("6.00", "6"),
    ("(1+2)*3", "9"),
    ("-5", "-5"),
    ("- (2 - 7)", "5"),
    (".5+.25", "0.75"),
    ("1/3", "0.33"),
    ("2/3", "0.67"),
    ("0.005", "0.01"),
    ("100", "100"),
    ("12.", "12"),
])
def test_evaluate(raw, expected):
    assert AmountExpressionEvaluator.evaluate(raw) == expected


@pytest.mark.parametrize("raw", ["1/0", "2+", "(1+2", "1+2)", "abc", "2^3", "1..2", "", "   ", "1 2"])
def test_evaluate_rejects_invalid_expressions(raw):
    with pytest.raises(EvaluationError):
        AmountExpressionEvaluator.evaluate(raw)


def test_evaluation_error_is_a_value_error():
    with pytest.raises(ValueError):
        AmountExpressionEvaluator.evaluate("1/(2-2)")


def test_negative_zero_renders_as_zero():
    assert AmountExpressionEvaluator.evaluate("-0.001") == "0"


def test_preview_of_empty_input_is_zero_and_keeps_income_flag():
    preview = AmountExpressionEvaluator.preview("")
    assert preview.evaluated == "0"
    assert preview.is_income is None
    assert preview.is_valid


def test_preview_of_invalid_input():
    preview = AmountExpressionEvaluator.preview("3*/4")
    assert preview.evaluated == INVALID_EXPRESSION
    assert preview.is_income is None
    assert not preview.is_valid


def test_preview_of_overflowing_expression():
    with localcontext() as ctx:
        ctx.Emax = 3
        preview = AmountExpressionEvaluator.preview("999*999")
    assert preview.evaluated == INVALID_EXPRESSION
    assert preview.is_income is None


def test_preview_classifies_income():
    assert AmountExpressionEvaluator.preview("-5").is_income is True
    assert AmountExpressionEvaluator.preview("5-2").is_income is False
    assert AmountExpressionEvaluator.is_income("2-7")
