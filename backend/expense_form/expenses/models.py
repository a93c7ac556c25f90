"""Expense form models."""
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import List, Optional, Tuple, Union

from expense_form.utils.enums import SplitMode


@dataclass(frozen=True)
class Participant:
    id: str
    name: str


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    currency: str
    participants: Tuple[Participant, ...] = ()

    def participant_ids(self) -> List[str]:
        return [p.id for p in self.participants]

    def has_participant(self, participant_id: str) -> bool:
        return any(p.id == participant_id for p in self.participants)


@dataclass(frozen=True)
class Category:
    id: int
    grouping: str
    name: str


@dataclass(frozen=True)
class PaidForEntry:
    """One selected participant. `shares` is raw text in display units."""
    participant: str
    shares: str = "1"


@dataclass(frozen=True)
class StoredPaidFor:
    """
    Persisted participant default. `shares` is in minor units (x100): an int,
    or the "100" string sentinel for EVENLY.
    """
    participant: str
    shares: Union[int, str]


@dataclass(frozen=True)
class SplittingOptions:
    """
    Persisted default split configuration.

    `paid_for` is None when no participant subset is recorded, which is
    different from an empty tuple.
    """
    split_mode: SplitMode
    paid_for: Optional[Tuple[StoredPaidFor, ...]]

    def to_dict(self) -> dict:
        return {
            "splitMode": self.split_mode.value,
            "paidFor": None if self.paid_for is None else [
                {"participant": p.participant, "shares": p.shares}
                for p in self.paid_for
            ],
        }


@dataclass(frozen=True)
class LoadedSplittingOptions:
    """Defaults ready for the form: shares back in display units."""
    split_mode: SplitMode
    paid_for: Tuple[PaidForEntry, ...]


@dataclass(frozen=True)
class ExpenseDocument:
    id: str
    url: str
    width: int
    height: int


@dataclass(frozen=True)
class ExpenseFormValues:
    title: str = ""
    expense_date: date = field(default_factory=date.today)
    amount: str = "0"  # raw text, may be an arithmetic expression
    category: int = 0
    paid_by: Optional[str] = None
    paid_for: Tuple[PaidForEntry, ...] = ()
    split_mode: SplitMode = SplitMode.EVENLY
    save_default_splitting_options: bool = False
    is_reimbursement: bool = False
    documents: Tuple[ExpenseDocument, ...] = ()
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "expenseDate": self.expense_date.isoformat(),
            "amount": self.amount,
            "category": self.category,
            "paidBy": self.paid_by,
            "paidFor": [asdict(p) for p in self.paid_for],
            "splitMode": self.split_mode.value,
            "saveDefaultSplittingOptions": self.save_default_splitting_options,
            "isReimbursement": self.is_reimbursement,
            "documents": [asdict(d) for d in self.documents],
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ExpenseFormValues":
        """Build values from a JSON payload. Raises ValueError on bad types."""
        split_mode = SplitMode.parse(d.get("splitMode", SplitMode.EVENLY.value))
        if split_mode is None:
            raise ValueError(f"unknown split mode: {d.get('splitMode')!r}")
        raw_date = d.get("expenseDate")
        expense_date = date.fromisoformat(raw_date[:10]) if raw_date else date.today()
        return cls(
            title=str(d.get("title", "")),
            expense_date=expense_date,
            amount=str(d.get("amount", "0")),
            category=int(d.get("category", 0) or 0),
            paid_by=d.get("paidBy") or None,
            paid_for=tuple(
                PaidForEntry(participant=str(p["participant"]), shares=str(p.get("shares", "1")))
                for p in d.get("paidFor") or []
            ),
            split_mode=split_mode,
            save_default_splitting_options=bool(d.get("saveDefaultSplittingOptions", False)),
            is_reimbursement=bool(d.get("isReimbursement", False)),
            documents=tuple(
                ExpenseDocument(
                    id=str(doc["id"]),
                    url=str(doc["url"]),
                    width=int(doc.get("width", 0) or 0),
                    height=int(doc.get("height", 0) or 0),
                )
                for doc in d.get("documents") or []
            ),
            notes=str(d.get("notes") or ""),
        )


@dataclass(frozen=True)
class ParsedPaidFor:
    participant: str
    shares_minor: int


@dataclass(frozen=True)
class ParsedExpense:
    """Validated submission. Amount and shares are in minor units."""
    title: str
    expense_date: date
    amount_minor: int
    category: int
    paid_by: str
    paid_for: Tuple[ParsedPaidFor, ...]
    split_mode: SplitMode
    save_default_splitting_options: bool
    is_reimbursement: bool
    documents: Tuple[ExpenseDocument, ...] = ()
    notes: str = ""

    def to_document(self) -> dict:
        """Shape used by the expenses collection."""
        return {
            "title": self.title,
            "expense_date": self.expense_date.isoformat(),
            "amount": self.amount_minor,
            "category_id": self.category,
            "paid_by_id": self.paid_by,
            "paid_for": [
                {"participant_id": p.participant, "shares": p.shares_minor}
                for p in self.paid_for
            ],
            "split_mode": self.split_mode.value,
            "is_reimbursement": self.is_reimbursement,
            "documents": [asdict(d) for d in self.documents],
            "notes": self.notes,
        }
