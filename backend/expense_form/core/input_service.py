"""
Currency Input Service - per-keystroke cleanup of share/amount fields.

The result is always an optionally signed decimal token with at most one
separator, e.g. "-12.5", "3.", "-", "" .
"""
import re

# Placeholders for the protected minus and separator. Both are stripped
# from the input first so a typed placeholder can never be restored.
_MINUS_MARK = '\ue000'
_SEPARATOR_MARK = '\ue001'

_LEADING_MINUS_RE = re.compile(r'^\s*-')
_SEPARATOR_RE = re.compile(r'[.,]')
_EXTRA_MARKS_RE = re.compile(r'[-.,]')
_NON_NUMERIC_RE = re.compile(r'[^-0-9.]')


class CurrencyInputSanitizer:
    """Constrain raw keystroke text into a valid signed-decimal token."""

    @classmethod
    def sanitize(cls, raw: str) -> str:
        value = raw.replace(_MINUS_MARK, '').replace(_SEPARATOR_MARK, '')
        value = _LEADING_MINUS_RE.sub(_MINUS_MARK, value, count=1)
        value = _SEPARATOR_RE.sub(_SEPARATOR_MARK, value, count=1)
        value = _EXTRA_MARKS_RE.sub('', value)
        value = value.replace(_MINUS_MARK, '-', 1)
        value = value.replace(_SEPARATOR_MARK, '.', 1)
        return _NON_NUMERIC_RE.sub('', value)


def sanitize(raw: str) -> str:
    return CurrencyInputSanitizer.sanitize(raw)
