import pytest

from expense_form.expenses import routes


def _new_state(client, **params):
    response = client.get("/api/v1/groups/g1/expenses/form", query_string=params)
    assert response.status_code == 200
    return response.get_json()["state"]


def _filled_state(client, **values):
    state = _new_state(client)
    state["values"].update({"title": "Dinner", "amount": "30", "paidBy": "p1"})
    state["values"].update(values)
    return state


def test_evaluate_amount(client):
    response = client.post("/api/v1/amount/evaluate", json={"expression": "12.50+3*2"})
    assert response.get_json() == {"evaluated": "18.5", "isIncome": False, "valid": True}

    response = client.post("/api/v1/amount/evaluate", json={"expression": "1/0"})
    assert response.get_json() == {"evaluated": "Invalid Expression", "isIncome": None, "valid": False}


def test_sanitize_amount(client):
    response = client.post("/api/v1/amount/sanitize", json={"value": "-12,5.3abc"})
    assert response.get_json() == {"value": "-12.53"}


def test_create_form_defaults(client):
    payload = client.get("/api/v1/groups/g1/expenses/form").get_json()
    values = payload["state"]["values"]
    assert values["splitMode"] == "EVENLY"
    assert [p["participant"] for p in values["paidFor"]] == ["p1", "p2", "p3"]
    assert payload["labels"]["title"] == "Create expense"
    assert payload["split"]["sharesInputVisible"] is False
    assert payload["split"]["toggleAllLabel"] == "Select none"
    assert all(p["selected"] and p["sharesEnabled"] for p in payload["participants"])


def test_unknown_group(client):
    assert client.get("/api/v1/groups/nope/expenses/form").status_code == 404
    assert client.get("/api/v1/groups/nope/default-splitting-options").status_code == 404


def test_reimbursement_form(client):
    state = _new_state(client, reimbursement="true", **{"from": "p2", "to": "p1", "amount": "1500"})
    assert state["values"]["title"] == "Reimbursement"
    assert state["values"]["amount"] == "15"
    assert state["values"]["category"] == 1
    assert state["values"]["paidFor"] == [{"participant": "p1", "shares": "1"}]


def test_reduce_toggle_all(client):
    state = _new_state(client)
    response = client.post("/api/v1/groups/g1/expenses/form/reduce", json={
        "state": state, "action": {"type": "toggleAllParticipants"},
    })
    payload = response.get_json()
    assert payload["state"]["values"]["paidFor"] == []
    assert payload["split"]["toggleAllLabel"] == "Select all"
    assert not any(p["sharesEnabled"] for p in payload["participants"])


def test_reduce_amount_switches_to_income_labels(client):
    state = _new_state(client)
    payload = client.post("/api/v1/groups/g1/expenses/form/reduce", json={
        "state": state, "action": {"type": "setAmount", "amount": "-20"},
    }).get_json()
    assert payload["state"]["isIncome"] is True
    assert payload["state"]["evaluatedAmount"] == "-20"
    assert payload["labels"]["title"] == "Create income"


def test_reduce_rejects_bad_action(client):
    state = _new_state(client)
    response = client.post("/api/v1/groups/g1/expenses/form/reduce", json={
        "state": state, "action": {"type": "explode"},
    })
    assert response.status_code == 400
    assert response.get_json()["fields"] == {"action": "invalid"}


def test_reduce_requires_action(client):
    response = client.post("/api/v1/groups/g1/expenses/form/reduce", json={"state": _new_state(client)})
    assert response.status_code == 400
    assert response.get_json()["fields"] == {"action": "required"}


def test_create_expense_and_save_defaults(client, app):
    state = _filled_state(
        client,
        splitMode="BY_SHARES",
        paidFor=[{"participant": "p1", "shares": "2"}, {"participant": "p2", "shares": "1"}],
        saveDefaultSplittingOptions=True,
    )
    response = client.post("/api/v1/groups/g1/expenses", json={"state": state},
                           headers={"X-Participant-Id": "p1"})
    assert response.status_code == 201
    expense_id = response.get_json()["expense_id"]

    stored = app.db.expenses.find_one({"_id": expense_id})
    assert stored["amount"] == 3000
    assert stored["paid_for"] == [
        {"participant_id": "p1", "shares": 200},
        {"participant_id": "p2", "shares": 100},
    ]
    assert stored["splits"] == [
        {"participant_id": "p1", "amount": 2000},
        {"participant_id": "p2", "amount": 1000},
    ]
    assert response.get_json()["expense"]["splits"] == stored["splits"]
    activity = app.db.activities.find_one({"expense_id": expense_id})
    assert activity["activity_type"] == "CREATE_EXPENSE"
    assert activity["participant_id"] == "p1"

    defaults = client.get("/api/v1/groups/g1/default-splitting-options").get_json()
    assert defaults == {
        "splitMode": "BY_SHARES",
        "paidFor": [{"participant": "p1", "shares": "2"}, {"participant": "p2", "shares": "1"}],
    }


def test_create_expense_validation_errors(client, app):
    state = _filled_state(client, amount="0", title="x")
    response = client.post("/api/v1/groups/g1/expenses", json={"state": state})
    assert response.status_code == 400
    assert response.get_json()["fields"] == {"amount": "amountNotZero", "title": "min2"}
    assert app.db.expenses.count_documents({}) == 0


def test_create_expense_requires_state(client):
    response = client.post("/api/v1/groups/g1/expenses", json={})
    assert response.status_code == 400
    assert response.get_json()["fields"] == {"state": "required"}


def test_edit_update_and_delete(client, app):
    state = _filled_state(
        client,
        amount="12.5*2",
        splitMode="BY_AMOUNT",
        paidFor=[{"participant": "p1", "shares": "10"}, {"participant": "p3", "shares": "15"}],
    )
    expense_id = client.post("/api/v1/groups/g1/expenses", json={"state": state}).get_json()["expense_id"]

    payload = client.get(f"/api/v1/groups/g1/expenses/{expense_id}/form").get_json()
    values = payload["state"]["values"]
    assert values["amount"] == "25"
    assert values["paidFor"] == [{"participant": "p1", "shares": "10"}, {"participant": "p3", "shares": "15"}]
    assert payload["labels"]["title"] == "Edit expense"
    assert payload["split"]["unitLabel"] == "EUR"

    values["title"] = "Dinner and drinks"
    response = client.put(f"/api/v1/groups/g1/expenses/{expense_id}", json={"state": payload["state"]})
    assert response.status_code == 200
    assert app.db.expenses.find_one({"_id": expense_id})["title"] == "Dinner and drinks"

    response = client.delete(f"/api/v1/groups/g1/expenses/{expense_id}", headers={"X-Participant-Id": "p2"})
    assert response.status_code == 200
    assert app.db.expenses.find_one({"_id": expense_id}) is None
    deletion = app.db.activities.find_one({"activity_type": "DELETE_EXPENSE"})
    assert deletion["participant_id"] == "p2"


def test_missing_expense(client):
    assert client.get("/api/v1/groups/g1/expenses/nope/form").status_code == 404
    assert client.delete("/api/v1/groups/g1/expenses/nope").status_code == 404


def test_acting_participant_defaults_to_active_user(client, app):
    app.db.preferences.insert_one({"_id": "g1-activeUser", "value": "p3"})
    state = _new_state(client)
    assert state["values"]["paidBy"] == "p3"
    state["values"].update({"title": "Snacks", "amount": "9"})
    expense_id = client.post("/api/v1/groups/g1/expenses", json={"state": state}).get_json()["expense_id"]
    assert app.db.activities.find_one({"expense_id": expense_id})["participant_id"] == "p3"


class _FakeCategoryService:

    def __init__(self, category_id=None, error=None):
        self.category_id = category_id
        self.error = error

    async def extract(self, title, categories):
        if self.error:
            raise self.error
        assert [c.id for c in categories] == [0, 1, 8]
        return {"categoryId": self.category_id}


def test_extract_category(client, monkeypatch):
    monkeypatch.setattr(routes, "get_category_service", lambda api_key=None: _FakeCategoryService(8))
    state = _filled_state(client, title="Pizza")
    payload = client.post("/api/v1/groups/g1/expenses/form/category", json={"state": state}).get_json()
    assert payload["state"]["values"]["category"] == 8
    assert payload["state"]["isCategoryLoading"] is False


def test_extract_category_failure_is_not_an_error(client, monkeypatch):
    monkeypatch.setattr(routes, "get_category_service",
                        lambda api_key=None: _FakeCategoryService(error=RuntimeError("quota")))
    state = _filled_state(client, title="Pizza", category=3)
    response = client.post("/api/v1/groups/g1/expenses/form/category", json={"state": state})
    assert response.status_code == 200
    assert response.get_json()["state"]["values"]["category"] == 3
    assert response.get_json()["state"]["isCategoryLoading"] is False


def test_extract_category_for_title(client, monkeypatch):
    monkeypatch.setattr(routes, "get_category_service", lambda api_key=None: _FakeCategoryService(8))
    response = client.post("/api/v1/groups/g1/categories/extract", json={"title": "Pizza"})
    assert response.status_code == 200
    assert response.get_json() == {"categoryId": 8}


def test_extract_category_for_title_failure(client, monkeypatch):
    monkeypatch.setattr(routes, "get_category_service",
                        lambda api_key=None: _FakeCategoryService(error=RuntimeError("quota")))
    response = client.post("/api/v1/groups/g1/categories/extract", json={"title": "Pizza"})
    assert response.status_code == 502


def test_extract_category_for_title_requires_title(client):
    response = client.post("/api/v1/groups/g1/categories/extract", json={})
    assert response.status_code == 400
    assert response.get_json()["fields"] == {"title": "required"}


def test_set_and_clear_active_user(client, app):
    assert client.get("/api/v1/groups/g1/active-user").get_json() == {"participantId": None}

    response = client.put("/api/v1/groups/g1/active-user", json={"participantId": "p2"})
    assert response.status_code == 200
    assert client.get("/api/v1/groups/g1/active-user").get_json() == {"participantId": "p2"}
    assert _new_state(client)["values"]["paidBy"] == "p2"

    client.put("/api/v1/groups/g1/active-user", json={"participantId": None})
    assert app.db.preferences.find_one({"_id": "g1-activeUser"})["value"] == "None"
    assert client.get("/api/v1/groups/g1/active-user").get_json() == {"participantId": None}


def test_active_user_must_be_in_the_group(client):
    response = client.put("/api/v1/groups/g1/active-user", json={"participantId": "stranger"})
    assert response.status_code == 400
    assert response.get_json()["fields"] == {"participantId": "unknownParticipant"}

    response = client.put("/api/v1/groups/g1/active-user", json={})
    assert response.get_json()["fields"] == {"participantId": "required"}
