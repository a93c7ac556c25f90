"""Core business logic of the expense form."""

from .amount_service import AmountExpressionEvaluator, AmountPreview, EvaluationError
from .input_service import CurrencyInputSanitizer
from .split_service import SplitCalculator
from .defaults_service import ActiveUserStore, DefaultSplitOptionsStore, PreferenceStore
from .validation_service import ExpenseFormValidator
from .form_controller import ExpenseFormController

__all__ = [
    "AmountExpressionEvaluator",
    "AmountPreview",
    "EvaluationError",
    "CurrencyInputSanitizer",
    "SplitCalculator",
    "ActiveUserStore",
    "DefaultSplitOptionsStore",
    "PreferenceStore",
    "ExpenseFormValidator",
    "ExpenseFormController",
]
