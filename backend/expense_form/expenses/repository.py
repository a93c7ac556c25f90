"""
Expense repository - groups, categories and expenses in MongoDB.

These are the collaborators the expense form calls into; the form core
never queries the database itself.
"""
from datetime import datetime
from typing import List, Optional

from bson import ObjectId

from expense_form.core.split_service import SplitCalculator
from expense_form.expenses.models import Category, Group, ParsedExpense, Participant
from expense_form.extensions import db as mongo


class ActivityType:
    """Activity log entry types."""
    CREATE_EXPENSE = "CREATE_EXPENSE"
    UPDATE_EXPENSE = "UPDATE_EXPENSE"
    DELETE_EXPENSE = "DELETE_EXPENSE"


class ExpenseRepository:

    @classmethod
    def expense_document(cls, expense: ParsedExpense) -> dict:
        """Stored shape of an expense, with what each participant owes in minor units."""
        doc = expense.to_document()
        doc["splits"] = [
            {"participant_id": s["participant"], "amount": s["amount"]}
            for s in SplitCalculator.distribute(expense.amount_minor, expense.split_mode, expense.paid_for)
        ]
        return doc

    @classmethod
    def get_group(cls, group_id: str) -> Optional[Group]:
        doc = mongo.groups.find_one({"_id": group_id})
        if not doc:
            return None
        return Group(
            id=str(doc["_id"]),
            name=doc.get("name", ""),
            currency=doc.get("currency", ""),
            participants=tuple(
                Participant(id=str(p["id"]), name=p.get("name", ""))
                for p in doc.get("participants", [])
            ),
        )

    @classmethod
    def get_categories(cls) -> List[Category]:
        return [
            Category(id=int(c["_id"]), grouping=c.get("grouping", ""), name=c.get("name", ""))
            for c in mongo.categories.find().sort("_id", 1)
        ]

    @classmethod
    def get_expense(cls, group_id: str, expense_id: str) -> Optional[dict]:
        return mongo.expenses.find_one({"_id": expense_id, "group_id": group_id})

    @classmethod
    def _log_activity(cls, group_id: str, activity_type: str, expense_id: str,
                      participant_id: Optional[str], title: str = "") -> None:
        mongo.activities.insert_one({
            "group_id": group_id,
            "activity_type": activity_type,
            "expense_id": expense_id,
            "participant_id": participant_id,
            "data": title,
            "time": datetime.utcnow(),
        })

    @classmethod
    def create_expense(cls, group_id: str, expense: ParsedExpense,
                       participant_id: Optional[str] = None) -> str:
        expense_id = str(ObjectId())
        doc = cls.expense_document(expense)
        doc.update({
            "_id": expense_id,
            "group_id": group_id,
            "created_at": datetime.utcnow(),
        })
        mongo.expenses.insert_one(doc)
        cls._log_activity(group_id, ActivityType.CREATE_EXPENSE, expense_id, participant_id, expense.title)
        print(f"[Expenses] Created expense {expense_id} in group {group_id}")
        return expense_id

    @classmethod
    def update_expense(cls, group_id: str, expense_id: str, expense: ParsedExpense,
                       participant_id: Optional[str] = None) -> bool:
        result = mongo.expenses.update_one(
            {"_id": expense_id, "group_id": group_id},
            {"$set": cls.expense_document(expense)},
        )
        if result.matched_count == 0:
            return False
        cls._log_activity(group_id, ActivityType.UPDATE_EXPENSE, expense_id, participant_id, expense.title)
        return True

    @classmethod
    def delete_expense(cls, group_id: str, expense_id: str,
                       participant_id: Optional[str] = None) -> bool:
        existing = cls.get_expense(group_id, expense_id)
        if not existing:
            return False
        mongo.expenses.delete_one({"_id": expense_id, "group_id": group_id})
        cls._log_activity(group_id, ActivityType.DELETE_EXPENSE, expense_id, participant_id,
                          existing.get("title", ""))
        print(f"[Expenses] Deleted expense {expense_id} from group {group_id}")
        return True
