"""
Default Splitting Options Service - remember how a group usually splits.

Responsibilities:
- Persist the last opted-in splitting options per group
- Restore them for a new expense, reconciled against the current roster
- Remember the active user of a group (default payer)

Records live in the `preferences` collection, one document per key:
    {"_id": "<groupId>-defaultSplittingOptions", "value": "<json>"}
Keys are per group, never per user.
"""
import json
from typing import Optional, Sequence

from expense_form.core.split_service import DEFAULT_SHARES, SplitCalculator
from expense_form.expenses.models import (
    LoadedSplittingOptions, PaidForEntry, ParsedExpense, Participant, SplittingOptions,
)
from expense_form.extensions import db as mongo
from expense_form.utils.decimals import from_minor_units
from expense_form.utils.enums import SplitMode

NO_ACTIVE_USER = "None"


class PreferenceStore:
    """String key/value store backed by a MongoDB collection."""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        if self._collection is None:
            return mongo.preferences
        return self._collection

    def get(self, key: str) -> Optional[str]:
        doc = self.collection.find_one({"_id": key})
        if not doc:
            return None
        return doc.get("value")

    def set(self, key: str, value: str) -> None:
        self.collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)

    def remove(self, key: str) -> None:
        self.collection.delete_one({"_id": key})


class DefaultSplitOptionsStore:
    """Load/save the default splitting options of a group."""

    def __init__(self, preferences: Optional[PreferenceStore] = None):
        self.preferences = preferences or PreferenceStore()

    @staticmethod
    def key(group_id: str) -> str:
        return f"{group_id}-defaultSplittingOptions"

    @staticmethod
    def default_options(participants: Sequence[Participant]) -> LoadedSplittingOptions:
        return LoadedSplittingOptions(
            split_mode=SplitMode.EVENLY,
            paid_for=tuple(PaidForEntry(participant=p.id, shares=DEFAULT_SHARES) for p in participants),
        )

    def load(self, group_id: str, participants: Sequence[Participant]) -> LoadedSplittingOptions:
        """
        Restore the stored defaults for a group.

        A record referencing a participant who left the group is deleted
        and the plain default returned. It is never partially repaired
        because the remaining shares or percentages would no longer add up.
        Missing or malformed records also give the plain default.
        """
        default = self.default_options(participants)
        raw = self.preferences.get(self.key(group_id))
        if raw is None:
            return default

        try:
            stored = json.loads(raw)
            split_mode = SplitMode.parse(stored.get("splitMode"))
            stored_paid_for = stored.get("paidFor")
        except (ValueError, TypeError, AttributeError) as e:
            print(f"[DefaultSplittingOptions] Ignoring malformed record for group {group_id}: {e}")
            return default
        if split_mode is None:
            print(f"[DefaultSplittingOptions] Ignoring unknown split mode for group {group_id}")
            return default

        if stored_paid_for is None:
            return LoadedSplittingOptions(split_mode=split_mode, paid_for=default.paid_for)

        roster = {p.id for p in participants}
        try:
            stale = any(entry["participant"] not in roster for entry in stored_paid_for)
            if not stale:
                paid_for = tuple(
                    PaidForEntry(
                        participant=entry["participant"],
                        shares=from_minor_units(entry["shares"]),
                    )
                    for entry in stored_paid_for
                )
        except (KeyError, TypeError, ValueError) as e:
            print(f"[DefaultSplittingOptions] Ignoring malformed record for group {group_id}: {e}")
            return default

        if stale:
            print(f"[DefaultSplittingOptions] Removing stale defaults for group {group_id}")
            self.preferences.remove(self.key(group_id))
            return default

        return LoadedSplittingOptions(split_mode=split_mode, paid_for=paid_for)

    def save(self, group_id: str, expense: ParsedExpense) -> Optional[SplittingOptions]:
        """Persist the submission's splitting options if the user opted in."""
        if not expense.save_default_splitting_options:
            return None
        options = SplitCalculator.compute_default_paid_for(expense)
        self.preferences.set(self.key(group_id), json.dumps(options.to_dict()))
        return options


class ActiveUserStore:
    """The participant who uses this device for a group."""

    def __init__(self, preferences: Optional[PreferenceStore] = None):
        self.preferences = preferences or PreferenceStore()

    @staticmethod
    def key(group_id: str) -> str:
        return f"{group_id}-activeUser"

    def get(self, group_id: str) -> Optional[str]:
        value = self.preferences.get(self.key(group_id))
        if not value or value == NO_ACTIVE_USER:
            return None
        return value

    def set(self, group_id: str, participant_id: Optional[str]) -> None:
        self.preferences.set(self.key(group_id), participant_id or NO_ACTIVE_USER)
