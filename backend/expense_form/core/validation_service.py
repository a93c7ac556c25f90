"""
Expense Form Validation Service - the submission boundary.

Turns the raw form values (text fields, display units) into a
ParsedExpense (numbers, minor units), or reports field-level errors.

Error codes:
    min2, invalidNumber, amountNotZero, amountTenMillion, paidByRequired,
    paidForMin1, noNegativeShares, noZeroShares, percentageSum, amountSum,
    reimbursementNotIncome
"""
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from expense_form.core.amount_service import AmountExpressionEvaluator, EvaluationError
from expense_form.core.split_service import EVENLY_STORED_SHARES
from expense_form.expenses.models import ExpenseFormValues, ParsedExpense, ParsedPaidFor, Participant
from expense_form.utils.decimals import parse_decimal, to_minor_units
from expense_form.utils.enums import SplitMode

MAX_AMOUNT_MINOR = 10_000_000_00
FULL_PERCENTAGE = Decimal(100)

Errors = Dict[str, str]


class ExpenseFormValidator:
    """Validation of submitted expense form values."""

    @classmethod
    def validate_amount(cls, raw: str) -> Tuple[Optional[int], Optional[str]]:
        """
        Parse the amount field into minor units.

        Returns:
            Tuple of (amount in minor units, error code if invalid)
        """
        try:
            value = AmountExpressionEvaluator.evaluate_decimal(raw.replace(',', '.'))
        except EvaluationError:
            return None, "invalidNumber"
        amount_minor = to_minor_units(value)
        if amount_minor == 0:
            return None, "amountNotZero"
        if abs(amount_minor) > MAX_AMOUNT_MINOR:
            return None, "amountTenMillion"
        return amount_minor, None

    @classmethod
    def validate_paid_for(
        cls,
        values: ExpenseFormValues,
        amount_minor: Optional[int],
    ) -> Tuple[Tuple[ParsedPaidFor, ...], Optional[str]]:
        """
        Parse shares and check they add up for the split mode.

        Returns:
            Tuple of (parsed entries, error code if invalid)
        """
        if not values.paid_for:
            return (), "paidForMin1"

        split_mode = values.split_mode
        shares = []
        for entry in values.paid_for:
            if split_mode == SplitMode.EVENLY:
                shares.append(Decimal(1))
                continue
            value = parse_decimal(entry.shares.replace(',', '.'))
            if value is None:
                return (), "invalidNumber"
            if value < 0 and split_mode != SplitMode.BY_AMOUNT:
                return (), "noNegativeShares"
            shares.append(value)

        if split_mode == SplitMode.BY_SHARES and sum(shares) <= 0:
            return (), "noZeroShares"
        if split_mode == SplitMode.BY_PERCENTAGE and sum(shares) != FULL_PERCENTAGE:
            return (), "percentageSum"

        if split_mode == SplitMode.EVENLY:
            parsed = tuple(
                ParsedPaidFor(participant=e.participant, shares_minor=int(EVENLY_STORED_SHARES))
                for e in values.paid_for
            )
        else:
            parsed = tuple(
                ParsedPaidFor(participant=e.participant, shares_minor=to_minor_units(s))
                for e, s in zip(values.paid_for, shares)
            )

        if split_mode == SplitMode.BY_AMOUNT and amount_minor is not None:
            if sum(p.shares_minor for p in parsed) != amount_minor:
                return (), "amountSum"
        return parsed, None

    @classmethod
    def validate(
        cls,
        values: ExpenseFormValues,
        participants: Sequence[Participant],
    ) -> Tuple[Optional[ParsedExpense], Errors]:
        """
        Validate the whole form.

        Args:
            values: Raw form values
            participants: Current group roster

        Returns:
            Tuple of (ParsedExpense or None, {field: error code})
        """
        errors: Errors = {}

        if len(values.title.strip()) < 2:
            errors["title"] = "min2"

        amount_minor, amount_error = cls.validate_amount(values.amount)
        if amount_error:
            errors["amount"] = amount_error

        roster = {p.id for p in participants}
        if not values.paid_by or values.paid_by not in roster:
            errors["paidBy"] = "paidByRequired"

        paid_for, paid_for_error = cls.validate_paid_for(values, amount_minor)
        if paid_for_error:
            errors["paidFor"] = paid_for_error

        if values.is_reimbursement and amount_minor is not None and amount_minor < 0:
            errors["isReimbursement"] = "reimbursementNotIncome"

        if errors:
            return None, errors

        return ParsedExpense(
            title=values.title.strip(),
            expense_date=values.expense_date,
            amount_minor=amount_minor,
            category=values.category,
            paid_by=values.paid_by,
            paid_for=paid_for,
            split_mode=values.split_mode,
            save_default_splitting_options=values.save_default_splitting_options,
            is_reimbursement=values.is_reimbursement,
            documents=values.documents,
            notes=values.notes,
        ), {}
