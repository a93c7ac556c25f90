"""
Expense Form Controller - drives one open expense form.

Holds the current FormState and talks to the collaborators:
- fetch_category_for_title(title) -> awaitable {"categoryId": int}
- submit_expense(parsed_expense, acting_participant_id) -> None
- delete_expense(acting_participant_id) -> None
"""
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Optional, Tuple

from expense_form.core.defaults_service import DefaultSplitOptionsStore
from expense_form.core.form_service import (
    CategoryExtractionFinished, CategoryExtractionStarted, FormState, reduce,
)
from expense_form.core.split_service import SplitCalculator
from expense_form.core.validation_service import ExpenseFormValidator
from expense_form.expenses.models import Group, ParsedExpense

FetchCategory = Callable[[str], Awaitable[Dict[str, int]]]
SubmitExpense = Callable[[ParsedExpense, Optional[str]], None]
DeleteExpense = Callable[[Optional[str]], None]


class ExpenseFormController:

    def __init__(
        self,
        group: Group,
        state: FormState,
        defaults_store: DefaultSplitOptionsStore,
        submit_expense: SubmitExpense,
        delete_expense: Optional[DeleteExpense] = None,
        fetch_category_for_title: Optional[FetchCategory] = None,
        active_participant_id: Optional[str] = None,
        enable_category_extract: bool = False,
    ):
        self.group = group
        self.state = state
        self.defaults_store = defaults_store
        self.submit_expense = submit_expense
        self.delete_expense = delete_expense
        self.fetch_category_for_title = fetch_category_for_title
        self.active_participant_id = active_participant_id
        self.enable_category_extract = enable_category_extract

    def dispatch(self, action) -> FormState:
        self.state = reduce(self.state, action, self.group.participants)
        return self.state

    async def on_title_blur(self) -> FormState:
        """
        Suggest a category from the title.

        The loading flag is always released, whatever the extractor does.
        A failed extraction leaves the category untouched.
        """
        if not self.enable_category_extract or self.fetch_category_for_title is None:
            return self.state

        self.dispatch(CategoryExtractionStarted())
        category = None
        try:
            result = await self.fetch_category_for_title(self.state.values.title)
            category = int(result["categoryId"])
        except Exception as e:
            print(f"[CategoryExtract] Extraction failed for group {self.group.id}: {e}")
        finally:
            self.dispatch(CategoryExtractionFinished(category=category))
        return self.state

    def submit(self) -> Tuple[Optional[ParsedExpense], Dict[str, str]]:
        """
        Validate, remember the splitting options if asked to, and hand the
        expense to the submit collaborator.

        Returns:
            Tuple of (parsed expense, {}) or (None, field errors)
        """
        values = self.state.values
        paid_for = SplitCalculator.prepare_paid_for(values.paid_for, self.group.participants)
        if paid_for != values.paid_for:
            self.state = replace(self.state, values=replace(values, paid_for=paid_for))
            values = self.state.values

        parsed, errors = ExpenseFormValidator.validate(values, self.group.participants)
        if errors:
            return None, errors

        self.defaults_store.save(self.group.id, parsed)
        self.submit_expense(parsed, self.active_participant_id)
        return parsed, {}

    def delete(self) -> None:
        if self.delete_expense is None:
            raise RuntimeError("This form has no delete action")
        self.delete_expense(self.active_participant_id)
