"""Request body checks for the expense form endpoints."""


class RequestValidationError(ValueError):
    """
    Malformed request body. The blueprint answers 400 with
    {"error": message, "fields": {key: code}}, the same shape as form
    validation errors.
    """

    def __init__(self, message, fields=None):
        super().__init__(message)
        self.fields = fields or {}


def require_keys(payload, *keys):
    """Every key must be present and not null."""
    if not isinstance(payload, dict):
        raise RequestValidationError("Request body must be a JSON object")
    missing = {k: "required" for k in keys if payload.get(k) is None}
    if missing:
        raise RequestValidationError(f"Missing fields: {', '.join(missing)}", missing)
    return payload


def require_object(payload, key):
    """`payload[key]` must be a JSON object. Returns it."""
    value = require_keys(payload, key)[key]
    if not isinstance(value, dict):
        raise RequestValidationError(f"{key} must be an object", {key: "object"})
    return value


def require_string(payload, key):
    """`payload[key]` must be a string. Returns it."""
    value = require_keys(payload, key)[key]
    if not isinstance(value, str):
        raise RequestValidationError(f"{key} must be a string", {key: "string"})
    return value
