"""
Expense Form Service - explicit state transitions for the expense form.

Every interaction with the form is an action; `reduce(state, action,
participants)` returns the next immutable state. Nothing here touches
storage except `initial_values`, which reads the stored defaults.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Mapping, Optional, Sequence

from bson import ObjectId

from expense_form.core.amount_service import AmountExpressionEvaluator
from expense_form.core.defaults_service import ActiveUserStore, DefaultSplitOptionsStore
from expense_form.core.split_service import DEFAULT_SHARES, SplitCalculator
from expense_form.expenses.models import (
    ExpenseDocument, ExpenseFormValues, Group, PaidForEntry, Participant,
)
from expense_form.utils.decimals import format_decimal, from_minor_units, parse_decimal, MINOR_UNITS
from expense_form.utils.enums import SplitMode

REIMBURSEMENT_TITLE = "Reimbursement"
GENERAL_CATEGORY_ID = 0
PAYMENT_CATEGORY_ID = 1


@dataclass(frozen=True)
class FormState:
    values: ExpenseFormValues
    evaluated_amount: str = "0"
    is_income: bool = False
    is_category_loading: bool = False

    def to_dict(self) -> dict:
        return {
            "values": self.values.to_dict(),
            "evaluatedAmount": self.evaluated_amount,
            "isIncome": self.is_income,
            "isCategoryLoading": self.is_category_loading,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "FormState":
        return cls(
            values=ExpenseFormValues.from_dict(d.get("values") or {}),
            evaluated_amount=str(d.get("evaluatedAmount", "0")),
            is_income=bool(d.get("isIncome", False)),
            is_category_loading=bool(d.get("isCategoryLoading", False)),
        )


# ---------- Actions ----------

@dataclass(frozen=True)
class SetTitle:
    title: str

@dataclass(frozen=True)
class SetExpenseDate:
    expense_date: date

@dataclass(frozen=True)
class SetAmount:
    raw: str

@dataclass(frozen=True)
class SetCategory:
    category: int

@dataclass(frozen=True)
class SetPaidBy:
    participant_id: Optional[str]

@dataclass(frozen=True)
class SetNotes:
    notes: str

@dataclass(frozen=True)
class SetReimbursement:
    is_reimbursement: bool

@dataclass(frozen=True)
class ToggleAllParticipants:
    pass

@dataclass(frozen=True)
class SetParticipantSelected:
    participant_id: str
    checked: bool

@dataclass(frozen=True)
class SetShares:
    participant_id: str
    raw: str

@dataclass(frozen=True)
class SetSplitMode:
    split_mode: SplitMode

@dataclass(frozen=True)
class SetSaveDefault:
    save_default: bool

@dataclass(frozen=True)
class AddDocument:
    document: ExpenseDocument

@dataclass(frozen=True)
class RemoveDocument:
    document_id: str

@dataclass(frozen=True)
class CategoryExtractionStarted:
    pass

@dataclass(frozen=True)
class CategoryExtractionFinished:
    category: Optional[int] = None  # None when extraction failed


def action_from_dict(d: dict):
    """Decode a JSON action {"type": ..., ...}. Raises ValueError."""
    kind = d.get("type")
    try:
        if kind == "setTitle":
            return SetTitle(str(d["title"]))
        if kind == "setExpenseDate":
            return SetExpenseDate(date.fromisoformat(str(d["expenseDate"])[:10]))
        if kind == "setAmount":
            return SetAmount(str(d["amount"]))
        if kind == "setCategory":
            return SetCategory(int(d["category"]))
        if kind == "setPaidBy":
            return SetPaidBy(d.get("paidBy") or None)
        if kind == "setNotes":
            return SetNotes(str(d["notes"]))
        if kind == "setReimbursement":
            return SetReimbursement(bool(d["isReimbursement"]))
        if kind == "toggleAllParticipants":
            return ToggleAllParticipants()
        if kind == "setParticipantSelected":
            return SetParticipantSelected(str(d["participant"]), bool(d["checked"]))
        if kind == "setShares":
            return SetShares(str(d["participant"]), str(d["shares"]))
        if kind == "setSplitMode":
            split_mode = SplitMode.parse(d["splitMode"])
            if split_mode is None:
                raise ValueError(f"unknown split mode: {d['splitMode']!r}")
            return SetSplitMode(split_mode)
        if kind == "setSaveDefault":
            return SetSaveDefault(bool(d["saveDefaultSplittingOptions"]))
        if kind == "addDocument":
            doc = d["document"]
            return AddDocument(ExpenseDocument(
                id=str(doc.get("id") or ObjectId()),
                url=str(doc["url"]),
                width=int(doc.get("width", 0) or 0),
                height=int(doc.get("height", 0) or 0),
            ))
        if kind == "removeDocument":
            return RemoveDocument(str(d["documentId"]))
    except KeyError as e:
        raise ValueError(f"missing field {e} for action {kind!r}") from e
    raise ValueError(f"unknown action: {kind!r}")


# ---------- Reducer ----------

def reduce(state: FormState, action, participants: Sequence[Participant]) -> FormState:
    """Return the state after `action`. Pure."""
    values = state.values

    if isinstance(action, SetTitle):
        return replace(state, values=replace(values, title=action.title))

    if isinstance(action, SetExpenseDate):
        return replace(state, values=replace(values, expense_date=action.expense_date))

    if isinstance(action, SetAmount):
        preview = AmountExpressionEvaluator.preview(action.raw)
        is_income = state.is_income if preview.is_income is None else preview.is_income
        new_values = replace(values, amount=action.raw)
        if is_income:
            # refunds and reimbursements are mutually exclusive
            new_values = replace(new_values, is_reimbursement=False)
        return replace(state, values=new_values, evaluated_amount=preview.evaluated, is_income=is_income)

    if isinstance(action, SetCategory):
        return replace(state, values=replace(values, category=action.category))

    if isinstance(action, SetPaidBy):
        return replace(state, values=replace(values, paid_by=action.participant_id))

    if isinstance(action, SetNotes):
        return replace(state, values=replace(values, notes=action.notes))

    if isinstance(action, SetReimbursement):
        if state.is_income:
            return state
        return replace(state, values=replace(values, is_reimbursement=action.is_reimbursement))

    if isinstance(action, ToggleAllParticipants):
        paid_for = SplitCalculator.toggle_all(values.paid_for, participants)
        return replace(state, values=replace(values, paid_for=paid_for))

    if isinstance(action, SetParticipantSelected):
        paid_for = SplitCalculator.set_selected(values.paid_for, action.participant_id, action.checked)
        return replace(state, values=replace(values, paid_for=paid_for))

    if isinstance(action, SetShares):
        paid_for = SplitCalculator.update_shares(values.paid_for, action.participant_id, action.raw)
        return replace(state, values=replace(values, paid_for=paid_for))

    if isinstance(action, SetSplitMode):
        return replace(state, values=replace(values, split_mode=action.split_mode))

    if isinstance(action, SetSaveDefault):
        return replace(state, values=replace(values, save_default_splitting_options=action.save_default))

    if isinstance(action, AddDocument):
        return replace(state, values=replace(values, documents=values.documents + (action.document,)))

    if isinstance(action, RemoveDocument):
        documents = tuple(d for d in values.documents if d.id != action.document_id)
        return replace(state, values=replace(values, documents=documents))

    if isinstance(action, CategoryExtractionStarted):
        return replace(state, is_category_loading=True)

    if isinstance(action, CategoryExtractionFinished):
        if action.category is not None:
            values = replace(values, category=action.category)
        return replace(state, values=values, is_category_loading=False)

    raise ValueError(f"unsupported action: {action!r}")


# ---------- Initial values ----------

def _param_date(raw: Optional[str]) -> date:
    if raw:
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            pass
    return date.today()


def _param_int(raw: Optional[str], default: int = 0) -> int:
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def values_from_expense(expense: dict) -> ExpenseFormValues:
    """Edit mode: a stored expense, converted back to display units."""
    split_mode = SplitMode.parse(expense.get("split_mode")) or SplitMode.EVENLY
    raw_date = expense.get("expense_date")
    return ExpenseFormValues(
        title=expense.get("title", ""),
        expense_date=_param_date(raw_date) if isinstance(raw_date, str) else (raw_date or date.today()),
        amount=from_minor_units(expense.get("amount", 0)),
        category=int(expense.get("category_id", GENERAL_CATEGORY_ID)),
        paid_by=expense.get("paid_by_id"),
        paid_for=tuple(
            PaidForEntry(participant=p["participant_id"], shares=from_minor_units(p["shares"]))
            for p in expense.get("paid_for", [])
        ),
        split_mode=split_mode,
        save_default_splitting_options=False,
        is_reimbursement=bool(expense.get("is_reimbursement", False)),
        documents=tuple(ExpenseDocument(**d) for d in expense.get("documents", [])),
        notes=expense.get("notes") or "",
    )


def initial_values(
    group: Group,
    defaults_store: DefaultSplitOptionsStore,
    active_user_store: ActiveUserStore,
    expense: Optional[dict] = None,
    params: Optional[Mapping[str, str]] = None,
) -> ExpenseFormValues:
    """
    Values the form opens with.

    - editing: the stored expense
    - `reimbursement` query param: a payment from `from` to `to` of
      `amount` minor units
    - otherwise: quick-capture params (title, date, amount, categoryId,
      imageUrl/imageWidth/imageHeight) on top of the stored defaults
    """
    if expense is not None:
        return values_from_expense(expense)

    params = params or {}
    defaults = defaults_store.load(group.id, group.participants)

    if params.get("reimbursement"):
        amount = parse_decimal(params.get("amount")) or 0
        to = params.get("to")
        return ExpenseFormValues(
            title=REIMBURSEMENT_TITLE,
            expense_date=date.today(),
            amount=format_decimal(amount / MINOR_UNITS),
            category=PAYMENT_CATEGORY_ID,
            paid_by=params.get("from") or None,
            paid_for=(PaidForEntry(participant=to, shares=DEFAULT_SHARES),) if to else (),
            split_mode=defaults.split_mode,
            save_default_splitting_options=False,
            is_reimbursement=True,
        )

    documents = ()
    if params.get("imageUrl"):
        documents = (ExpenseDocument(
            id=str(ObjectId()),
            url=params["imageUrl"],
            width=_param_int(params.get("imageWidth")),
            height=_param_int(params.get("imageHeight")),
        ),)

    return ExpenseFormValues(
        title=params.get("title") or "",
        expense_date=_param_date(params.get("date")),
        amount=params.get("amount") or "0",
        category=_param_int(params.get("categoryId"), GENERAL_CATEGORY_ID),
        paid_by=active_user_store.get(group.id),
        paid_for=defaults.paid_for,
        split_mode=defaults.split_mode,
        save_default_splitting_options=False,
        is_reimbursement=False,
        documents=documents,
    )


def initial_state(values: ExpenseFormValues) -> FormState:
    amount = parse_decimal(values.amount)
    return FormState(values=values, is_income=amount is not None and amount < 0)


def form_labels(is_create: bool, is_income: bool) -> dict:
    """Wording that depends on create/edit and expense/income."""
    expense = "income" if is_income else "expense"
    paid = "received" if is_income else "paid"
    return {
        "expense": expense,
        "paid": paid,
        "title": ("Create " if is_create else "Edit ") + expense,
        "titleField": f"{expense.capitalize()} title",
        "dateField": f"{expense.capitalize()} date",
        "paidByField": f"{paid.capitalize()} by",
        "submit": "Create" if is_create else "Save",
        "submitting": "Creating…" if is_create else "Saving…",
        "showReimbursement": not is_income,
    }
