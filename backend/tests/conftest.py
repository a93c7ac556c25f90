import mongomock
import pytest

from expense_form import create_app
from expense_form.config import TestingConfig
from expense_form.core.defaults_service import DefaultSplitOptionsStore, PreferenceStore
from expense_form.expenses.models import Group, Participant


@pytest.fixture
def participants():
    return (
        Participant(id="p1", name="Alice"),
        Participant(id="p2", name="Bob"),
        Participant(id="p3", name="Chloe"),
    )


@pytest.fixture
def group(participants):
    return Group(id="g1", name="Trip", currency="EUR", participants=participants)


@pytest.fixture
def preferences():
    return PreferenceStore(collection=mongomock.MongoClient().db.preferences)


@pytest.fixture
def defaults_store(preferences):
    return DefaultSplitOptionsStore(preferences)


@pytest.fixture
def app():
    client = mongomock.MongoClient()
    app = create_app(TestingConfig, mongo_client=client)
    db = client[TestingConfig.MONGO_DB_NAME]
    db.groups.insert_one({
        "_id": "g1",
        "name": "Trip",
        "currency": "EUR",
        "participants": [
            {"id": "p1", "name": "Alice"},
            {"id": "p2", "name": "Bob"},
            {"id": "p3", "name": "Chloe"},
        ],
    })
    db.categories.insert_many([
        {"_id": 0, "grouping": "Uncategorized", "name": "General"},
        {"_id": 1, "grouping": "Uncategorized", "name": "Payment"},
        {"_id": 8, "grouping": "Food and Drink", "name": "Dining Out"},
    ])
    app.db = db
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
