"""
Shared utilities for the PatentVault API.

Request parsing, schema validation and the optional API-key guard used
across all blueprints.
"""

import secrets
from functools import wraps
from typing import Any

from flask import jsonify, request

from api.state import get_services
from exceptions import ValidationError

# Bounded inputs
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 50000
MAX_INVENTOR_LENGTH = 500
MAX_MERKLE_FIELDS = 1024
MAX_BATCH_PROOFS = 1000


# ============================================================
# Validation Utilities
# ============================================================

def validate_json_schema(
    data: dict[str, Any],
    required_fields: dict[str, type | tuple[type, ...]],
    optional_fields: dict[str, type | tuple[type, ...]] | None = None,
    max_lengths: dict[str, int] | None = None
) -> tuple:
    """
    Validate JSON payload against a simple schema.

    Args:
        data: The JSON data to validate
        required_fields: Dict mapping field names to expected types
        optional_fields: Dict mapping optional field names to expected types
        max_lengths: Dict mapping field names to maximum string lengths

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    for field_name, expected_type in required_fields.items():
        if field_name not in data or data[field_name] in (None, ""):
            return False, f"Missing required field: {field_name}"
        if not isinstance(data[field_name], expected_type):
            return False, f"Field '{field_name}' must be of type {_type_name(expected_type)}"

    if optional_fields:
        for field_name, expected_type in optional_fields.items():
            if field_name in data and data[field_name] is not None:
                if not isinstance(data[field_name], expected_type):
                    return False, f"Field '{field_name}' must be of type {_type_name(expected_type)}"

    if max_lengths:
        for field_name, max_len in max_lengths.items():
            if field_name in data and isinstance(data[field_name], str):
                if len(data[field_name]) > max_len:
                    return False, f"Field '{field_name}' exceeds maximum length of {max_len}"

    return True, None


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def get_json_body() -> dict[str, Any]:
    """
    Parse the request body as a JSON object.

    Raises:
        ValidationError: If the body is missing or not a JSON object
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_fields(data: dict[str, Any], message: str, *names: str) -> None:
    """Raise ValidationError(message) unless every named field is present and truthy."""
    if any(not data.get(name) for name in names):
        raise ValidationError(message, field_name=names[0] if len(names) == 1 else None)


def parse_bool(value: Any, default: bool = False) -> bool:
    """
    Interpret a form or JSON flag.

    Multipart forms only carry strings, so ``"true"`` counts as true.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


# ============================================================
# Authentication Decorator
# ============================================================

def require_api_key(f):
    """Decorator to require API key authentication when enabled in the config."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        config = get_services().config
        if not config.require_auth:
            return f(*args, **kwargs)

        provided_key = request.headers.get('X-API-Key')

        if not provided_key:
            return jsonify({
                "error": "API key required",
                "hint": "Provide API key in X-API-Key header"
            }), 401

        if not config.api_key:
            return jsonify({
                "error": "Server API key not configured",
                "hint": "Set PATENTVAULT_API_KEY environment variable"
            }), 503

        if not secrets.compare_digest(provided_key, config.api_key):
            return jsonify({"error": "Invalid API key"}), 403

        return f(*args, **kwargs)
    return decorated_function
