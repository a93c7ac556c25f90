import pytest

from expense_form.utils.validators import (
    RequestValidationError, require_keys, require_object, require_string,
)


def test_require_keys_reports_every_missing_field():
    with pytest.raises(RequestValidationError) as exc:
        require_keys({"state": {}, "action": None}, "state", "action", "isCreate")
    assert exc.value.fields == {"action": "required", "isCreate": "required"}


def test_require_keys_returns_payload():
    payload = {"title": "Pizza"}
    assert require_keys(payload, "title") is payload


def test_non_object_body_is_rejected():
    with pytest.raises(RequestValidationError):
        require_keys(["state"], "state")


def test_require_object():
    assert require_object({"state": {"values": {}}}, "state") == {"values": {}}
    with pytest.raises(RequestValidationError) as exc:
        require_object({"state": "nope"}, "state")
    assert exc.value.fields == {"state": "object"}


def test_require_string():
    assert require_string({"title": "Pizza"}, "title") == "Pizza"
    with pytest.raises(RequestValidationError) as exc:
        require_string({"title": 12}, "title")
    assert exc.value.fields == {"title": "string"}


def test_request_validation_error_is_a_value_error():
    assert issubclass(RequestValidationError, ValueError)
