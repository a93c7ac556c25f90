import re

import pytest

from expense_form.core.input_service import CurrencyInputSanitizer, sanitize

VALID_TOKEN = re.compile(r"^-?\d*\.?\d*$")


@pytest.mark.parametrize("raw, expected", [
    ("12", "12"),
    ("12,5", "12.5"),
    ("12.5", "12.5"),
    ("-12.5", "-12.5"),
    ("  -3", "-3"),
    ("1.2.3", "1.23"),
    ("1,2.3", "1.23"),
    ("5-", "5"),
    ("--5", "-5"),
    ("-5-5", "-55"),
    ("€ 12,50", "12.50"),
    ("abc", ""),
    ("-", "-"),
    (".", "."),
    ("", ""),
    ("1_2", "12"),
    ("a-1", "1"),
])
def test_sanitize(raw, expected):
    assert sanitize(raw) == expected


@pytest.mark.parametrize("raw", [
    "12,5", "-1.2.3", "  -,-,", "x-y.z,1", "--..,,99", "-1", "1,2", "٣٤", "-0.0.0", "1e5",
])
def test_sanitize_output_is_a_valid_token_and_idempotent(raw):
    once = CurrencyInputSanitizer.sanitize(raw)
    assert VALID_TOKEN.match(once)
    assert once.count("-") <= 1
    assert once.count(".") <= 1
    assert "-" not in once[1:]
    assert CurrencyInputSanitizer.sanitize(once) == once


def test_sanitize_drops_non_ascii_digits():
    assert sanitize("٣4") == "4"
