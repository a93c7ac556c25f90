# expense_form/expenses/routes.py

import asyncio

from flask import Blueprint, current_app, jsonify, request

from expense_form.core import (
    ActiveUserStore, AmountExpressionEvaluator, CurrencyInputSanitizer,
    DefaultSplitOptionsStore, ExpenseFormController, SplitCalculator,
)
from expense_form.core.form_service import (
    FormState, action_from_dict, form_labels, initial_state, initial_values, reduce,
    values_from_expense,
)
from expense_form.expenses.repository import ExpenseRepository
from expense_form.services.gemini_category import get_category_service
from expense_form.utils.validators import (
    RequestValidationError, require_object, require_string,
)

expenses_bp = Blueprint("expenses", __name__)


def _acting_participant_id(group_id):
    """X-Participant-Id header, falling back to the group's active user."""
    return request.headers.get("X-Participant-Id") or ActiveUserStore().get(group_id)


def _form_payload(group, state, is_create):
    values = state.values
    split_mode = values.split_mode
    return {
        "state": state.to_dict(),
        "labels": form_labels(is_create, state.is_income),
        "currency": group.currency,
        "features": {
            "categoryExtract": current_app.config.get("ENABLE_CATEGORY_EXTRACT", False),
            "expenseDocuments": current_app.config.get("ENABLE_EXPENSE_DOCUMENTS", False),
        },
        "split": {
            "unitLabel": SplitCalculator.unit_label(split_mode, group.currency),
            "sharesInputVisible": SplitCalculator.shares_input_visible(split_mode),
            "toggleAllLabel": SplitCalculator.toggle_all_label(values.paid_for, group.participants),
            **SplitCalculator.shares_input_mode(split_mode),
        },
        "participants": [
            {
                "id": p.id,
                "name": p.name,
                "selected": SplitCalculator.is_selected(values.paid_for, p.id),
                "shares": SplitCalculator.shares_for(values.paid_for, p.id),
                "sharesEnabled": SplitCalculator.shares_field_enabled(values.paid_for, p.id),
            }
            for p in group.participants
        ],
    }


def _load_group(group_id):
    group = ExpenseRepository.get_group(group_id)
    if not group:
        return None, (jsonify({"error": "Group not found"}), 404)
    return group, None


@expenses_bp.errorhandler(RequestValidationError)
def handle_request_validation_error(e):
    return jsonify({"error": str(e), "fields": e.fields}), 400


def _state_from_body(data):
    state = require_object(data, "state")
    try:
        return FormState.from_dict(state)
    except (KeyError, TypeError, ValueError) as e:
        raise RequestValidationError(f"Malformed form state: {e}", {"state": "invalid"}) from e


# ---------- Field helpers ----------

@expenses_bp.route("/amount/evaluate", methods=["POST"])
def evaluate_amount():
    """
    Preview of the amount field.

    Request body: {"expression": "12.50+3*2"}
    """
    data = request.get_json(silent=True) or {}
    preview = AmountExpressionEvaluator.preview(str(data.get("expression", "")))
    return jsonify({"evaluated": preview.evaluated, "isIncome": preview.is_income, "valid": preview.is_valid})


@expenses_bp.route("/amount/sanitize", methods=["POST"])
def sanitize_amount():
    data = request.get_json(silent=True) or {}
    return jsonify({"value": CurrencyInputSanitizer.sanitize(str(data.get("value", "")))})


# ---------- Form ----------

@expenses_bp.route("/groups/<group_id>/expenses/form", methods=["GET"])
def create_form(group_id):
    """Initial form for a new expense. Accepts the quick-capture/reimbursement query params."""
    group, error = _load_group(group_id)
    if error:
        return error

    values = initial_values(
        group,
        DefaultSplitOptionsStore(),
        ActiveUserStore(),
        params=request.args,
    )
    return jsonify(_form_payload(group, initial_state(values), is_create=True))


@expenses_bp.route("/groups/<group_id>/expenses/<expense_id>/form", methods=["GET"])
def edit_form(group_id, expense_id):
    group, error = _load_group(group_id)
    if error:
        return error

    expense = ExpenseRepository.get_expense(group_id, expense_id)
    if not expense:
        return jsonify({"error": "Expense not found"}), 404

    values = initial_values(group, DefaultSplitOptionsStore(), ActiveUserStore(), expense=expense)
    return jsonify(_form_payload(group, initial_state(values), is_create=False))


@expenses_bp.route("/groups/<group_id>/expenses/form/reduce", methods=["POST"])
def reduce_form(group_id):
    """
    Apply one interaction to the form.

    Request body:
    {
        "state": {...},            // as returned by the form endpoints
        "action": {"type": "setShares", "participant": "...", "shares": "12,5"},
        "isCreate": true
    }
    """
    group, error = _load_group(group_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    state = _state_from_body(data)
    action_data = require_object(data, "action")
    try:
        action = action_from_dict(action_data)
    except ValueError as e:
        raise RequestValidationError(str(e), {"action": "invalid"}) from e

    state = reduce(state, action, group.participants)
    return jsonify(_form_payload(group, state, is_create=bool(data.get("isCreate", True))))


@expenses_bp.route("/groups/<group_id>/expenses/form/category", methods=["POST"])
def extract_category(group_id):
    """Title blur: suggest a category for the title in the submitted state."""
    group, error = _load_group(group_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    state = _state_from_body(data)

    categories = ExpenseRepository.get_categories()
    service = get_category_service(current_app.config.get("GEMINI_API_KEY"))
    controller = ExpenseFormController(
        group,
        state,
        DefaultSplitOptionsStore(),
        submit_expense=lambda expense, participant_id: None,
        fetch_category_for_title=lambda title: service.extract(title, categories),
        enable_category_extract=current_app.config.get("ENABLE_CATEGORY_EXTRACT", False),
    )
    state = asyncio.run(controller.on_title_blur())
    return jsonify(_form_payload(group, state, is_create=bool(data.get("isCreate", True))))


@expenses_bp.route("/groups/<group_id>/default-splitting-options", methods=["GET"])
def default_splitting_options(group_id):
    group, error = _load_group(group_id)
    if error:
        return error

    options = DefaultSplitOptionsStore().load(group.id, group.participants)
    return jsonify({
        "splitMode": options.split_mode.value,
        "paidFor": [{"participant": p.participant, "shares": p.shares} for p in options.paid_for],
    })


@expenses_bp.route("/groups/<group_id>/categories/extract", methods=["POST"])
def extract_category_for_title(group_id):
    """
    Suggest a category for a bare title.

    Request body: {"title": "Pizza night"}
    Response: {"categoryId": 8}
    """
    group, error = _load_group(group_id)
    if error:
        return error

    title = require_string(request.get_json(silent=True) or {}, "title")
    if not current_app.config.get("ENABLE_CATEGORY_EXTRACT", False):
        return jsonify({"error": "Category extraction is disabled"}), 404

    service = get_category_service(current_app.config.get("GEMINI_API_KEY"))
    try:
        result = asyncio.run(service.extract(title, ExpenseRepository.get_categories()))
    except RuntimeError as e:
        print(f"[CategoryExtract] Extraction failed for group {group.id}: {e}")
        return jsonify({"error": "Category extraction failed"}), 502
    return jsonify(result)


# ---------- Active user ----------

@expenses_bp.route("/groups/<group_id>/active-user", methods=["GET"])
def get_active_user(group_id):
    group, error = _load_group(group_id)
    if error:
        return error
    return jsonify({"participantId": ActiveUserStore().get(group.id)})


@expenses_bp.route("/groups/<group_id>/active-user", methods=["PUT"])
def set_active_user(group_id):
    """
    Choose who uses this device for the group; null clears it.

    Request body: {"participantId": "p1" | null}
    """
    group, error = _load_group(group_id)
    if error:
        return error

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "participantId" not in data:
        raise RequestValidationError("Missing fields: participantId", {"participantId": "required"})
    participant_id = data["participantId"]
    if participant_id is not None and not group.has_participant(participant_id):
        raise RequestValidationError("Unknown participant", {"participantId": "unknownParticipant"})

    ActiveUserStore().set(group.id, participant_id)
    return jsonify({"participantId": participant_id})


# ---------- Submit / delete ----------

def _submit(group, data, save):
    state = _state_from_body(data)
    saved = {}

    def submit_expense(expense, participant_id):
        saved["id"] = save(expense, participant_id)

    controller = ExpenseFormController(
        group,
        state,
        DefaultSplitOptionsStore(),
        submit_expense=submit_expense,
        active_participant_id=_acting_participant_id(group.id),
    )
    parsed, errors = controller.submit()
    if errors:
        return jsonify({"error": "Invalid expense", "fields": errors}), 400
    return jsonify({"expense_id": saved.get("id"), "expense": ExpenseRepository.expense_document(parsed)}), 201


@expenses_bp.route("/groups/<group_id>/expenses", methods=["POST"])
def create_expense(group_id):
    group, error = _load_group(group_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    return _submit(
        group, data,
        lambda expense, participant_id: ExpenseRepository.create_expense(group.id, expense, participant_id),
    )


@expenses_bp.route("/groups/<group_id>/expenses/<expense_id>", methods=["PUT"])
def update_expense(group_id, expense_id):
    group, error = _load_group(group_id)
    if error:
        return error
    if not ExpenseRepository.get_expense(group_id, expense_id):
        return jsonify({"error": "Expense not found"}), 404

    data = request.get_json(silent=True) or {}

    def save(expense, participant_id):
        ExpenseRepository.update_expense(group.id, expense_id, expense, participant_id)
        return expense_id

    response, status = _submit(group, data, save)
    return response, (200 if status == 201 else status)


@expenses_bp.route("/groups/<group_id>/expenses/<expense_id>", methods=["DELETE"])
def delete_expense(group_id, expense_id):
    group, error = _load_group(group_id)
    if error:
        return error
    expense = ExpenseRepository.get_expense(group_id, expense_id)
    if not expense:
        return jsonify({"error": "Expense not found"}), 404

    controller = ExpenseFormController(
        group,
        initial_state(values_from_expense(expense)),
        DefaultSplitOptionsStore(),
        submit_expense=lambda expense, participant_id: None,
        delete_expense=lambda participant_id: ExpenseRepository.delete_expense(
            group.id, expense_id, participant_id),
        active_participant_id=_acting_participant_id(group.id),
    )
    controller.delete()
    return jsonify({"message": "Expense deleted"}), 200
