"""
Split Calculation Service - who an expense is paid for, and how.

Responsibilities:
- Select all / select none and per-participant selection
- Shares input affordances per split mode (label, visibility, input mode)
- Guarantee paid-for entries are unique and reference the current roster
- Project a submitted expense onto the default splitting options to persist
- Distribute an amount (minor units) across participants
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from expense_form.core.input_service import CurrencyInputSanitizer
from expense_form.expenses.models import (
    PaidForEntry, ParsedExpense, ParsedPaidFor, Participant, SplittingOptions, StoredPaidFor,
)
from expense_form.utils.enums import SplitMode

DEFAULT_SHARES = "1"
# Stored for EVENLY defaults; the even split is recomputed from the roster on load.
EVENLY_STORED_SHARES = "100"

PaidFor = Tuple[PaidForEntry, ...]


class SplitCalculator:
    """Selection, affordances and persistence projection for paid-for lists."""

    # ---------- Selection ----------

    @classmethod
    def is_selected(cls, paid_for: Iterable[PaidForEntry], participant_id: str) -> bool:
        return any(p.participant == participant_id for p in paid_for)

    @classmethod
    def shares_field_enabled(cls, paid_for: Iterable[PaidForEntry], participant_id: str) -> bool:
        return cls.is_selected(paid_for, participant_id)

    @classmethod
    def shares_for(cls, paid_for: Iterable[PaidForEntry], participant_id: str) -> Optional[str]:
        for p in paid_for:
            if p.participant == participant_id:
                return p.shares
        return None

    @classmethod
    def all_selected(cls, paid_for: Sequence[PaidForEntry], participants: Sequence[Participant]) -> bool:
        return len(paid_for) == len(participants)

    @classmethod
    def toggle_all_label(cls, paid_for: Sequence[PaidForEntry], participants: Sequence[Participant]) -> str:
        return "Select none" if cls.all_selected(paid_for, participants) else "Select all"

    @classmethod
    def toggle_all(cls, paid_for: Sequence[PaidForEntry], participants: Sequence[Participant]) -> PaidFor:
        """
        All-or-nothing selection.

        If everybody is selected the list is cleared. Otherwise every
        participant is selected, keeping the shares already entered and
        defaulting newcomers to "1".
        """
        if cls.all_selected(paid_for, participants):
            return ()
        selected = []
        for p in participants:
            shares = cls.shares_for(paid_for, p.id)
            selected.append(PaidForEntry(
                participant=p.id,
                shares=DEFAULT_SHARES if shares is None else shares,
            ))
        return tuple(selected)

    @classmethod
    def set_selected(cls, paid_for: Sequence[PaidForEntry], participant_id: str, checked: bool) -> PaidFor:
        if checked:
            if cls.is_selected(paid_for, participant_id):
                return tuple(paid_for)
            return tuple(paid_for) + (PaidForEntry(participant=participant_id, shares=DEFAULT_SHARES),)
        return tuple(p for p in paid_for if p.participant != participant_id)

    @classmethod
    def update_shares(cls, paid_for: Sequence[PaidForEntry], participant_id: str, raw: str) -> PaidFor:
        """Write the sanitized keystroke text to one participant's entry."""
        shares = CurrencyInputSanitizer.sanitize(raw)
        return tuple(
            PaidForEntry(participant=participant_id, shares=shares)
            if p.participant == participant_id else p
            for p in paid_for
        )

    @classmethod
    def prepare_paid_for(cls, paid_for: Iterable[PaidForEntry], participants: Sequence[Participant]) -> PaidFor:
        """Drop duplicate ids (first wins) and ids not in the roster."""
        roster = {p.id for p in participants}
        seen = set()
        prepared = []
        for entry in paid_for:
            if entry.participant not in roster or entry.participant in seen:
                continue
            seen.add(entry.participant)
            prepared.append(entry)
        return tuple(prepared)

    # ---------- Affordances ----------

    @classmethod
    def unit_label(cls, split_mode: SplitMode, currency: str) -> Optional[str]:
        if split_mode == SplitMode.BY_SHARES:
            return "share(s)"
        if split_mode == SplitMode.BY_PERCENTAGE:
            return "%"
        if split_mode == SplitMode.BY_AMOUNT:
            return currency
        return None

    @classmethod
    def shares_input_visible(cls, split_mode: SplitMode) -> bool:
        return split_mode != SplitMode.EVENLY

    @classmethod
    def shares_input_mode(cls, split_mode: SplitMode) -> Dict[str, Any]:
        if split_mode == SplitMode.BY_AMOUNT:
            return {"input_mode": "decimal", "step": 0.01}
        return {"input_mode": "numeric", "step": 1}

    # ---------- Persistence projection ----------

    @classmethod
    def compute_default_paid_for(cls, expense: ParsedExpense) -> SplittingOptions:
        """
        Project a validated submission onto the splitting options to persist.

        - EVENLY: every selected participant with the "100" sentinel
        - BY_AMOUNT: None, per-person amounts are specific to one expense
        - otherwise: the submitted shares as numbers, already in minor units
        """
        if expense.split_mode == SplitMode.EVENLY:
            paid_for = tuple(
                StoredPaidFor(participant=p.participant, shares=EVENLY_STORED_SHARES)
                for p in expense.paid_for
            )
        elif expense.split_mode == SplitMode.BY_AMOUNT:
            paid_for = None
        else:
            paid_for = tuple(
                StoredPaidFor(participant=p.participant, shares=p.shares_minor)
                for p in expense.paid_for
            )
        return SplittingOptions(split_mode=expense.split_mode, paid_for=paid_for)

    # ---------- Distribution ----------

    @classmethod
    def distribute(
        cls,
        amount_minor: int,
        split_mode: SplitMode,
        paid_for: Sequence[ParsedPaidFor],
    ) -> List[Dict[str, Any]]:
        """
        Calculate what each participant owes, in minor units.

        Handles remainder cents by adding them to the last participant,
        so the amounts always sum to `amount_minor` exactly (BY_AMOUNT
        uses the entered amounts as they are).

        Returns:
            List of {participant, amount} dicts
        """
        if not paid_for:
            return []

        if split_mode == SplitMode.BY_AMOUNT:
            return [{"participant": p.participant, "amount": p.shares_minor} for p in paid_for]

        total = Decimal(amount_minor)
        if split_mode == SplitMode.EVENLY:
            weights = [Decimal(1)] * len(paid_for)
        else:
            weights = [Decimal(p.shares_minor) for p in paid_for]

        if split_mode == SplitMode.BY_PERCENTAGE:
            # shares are percentages x100, a full split is 10000
            weights_total = Decimal(10000)
        else:
            weights_total = sum(weights)
        if weights_total == 0:
            return [{"participant": p.participant, "amount": 0} for p in paid_for]

        splits = []
        running_total = 0
        for i, (entry, weight) in enumerate(zip(paid_for, weights)):
            if i == len(paid_for) - 1:
                amount = amount_minor - running_total
            else:
                amount = int((total * weight / weights_total).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
                running_total += amount
            splits.append({"participant": entry.participant, "amount": amount})
        return splits
