"""
Validation and sandboxing for everything that reaches the recipe API.

Two groups of checks:
- user input (message, session id), applied by the API layer before the pipeline runs;
- operation batches proposed by a generation step, applied by the pipeline
  before any network call. Only search/filter/lookup with known parameter
  shapes get through.

All violations raise ValidationFailure with a machine-readable code.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from chefsue.core.config import MAX_API_CALLS, MAX_MESSAGE_LENGTH
from chefsue.core.errors import ValidationFailure
from chefsue.core.vocabulary import CATEGORY_SET, INGREDIENT_SET, COMMON_INGREDIENTS, MEAL_CATEGORIES
from chefsue.schemas.operations import Endpoint, Operation

logger = logging.getLogger(__name__)

ALLOWED_ENDPOINTS: tuple[str, ...] = tuple(e.value for e in Endpoint)

ALLOWED_PARAMS: dict[str, frozenset[str]] = {
    Endpoint.SEARCH.value: frozenset({"s"}),
    Endpoint.FILTER.value: frozenset({"i", "c"}),
    Endpoint.LOOKUP.value: frozenset({"i"}),
}

SEARCH_MAX_LENGTH = 100
INGREDIENT_MAX_LENGTH = 50
CATEGORY_MAX_LENGTH = 30

_DANGEROUS_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
]
_SESSION_ID_RE = re.compile(r"^[a-zA-Z0-9\-_]+$")
_MEAL_ID_RE = re.compile(r"^\d+$")


# --- User input ---

def validate_user_message(message: Any, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Check type, length and dangerous markup. Returns the stripped message."""
    if not message or not isinstance(message, str) or not message.strip():
        raise ValidationFailure("Message is required and must be a string", "INVALID_MESSAGE")
    if len(message) > max_length:
        raise ValidationFailure(f"Message too long. Maximum {max_length} characters", "MESSAGE_TOO_LONG")
    for pattern in _DANGEROUS_PATTERNS:
        if pattern.search(message):
            logger.warning("[validators:validate_user_message] rejected pattern=%s", pattern.pattern)
            raise ValidationFailure("Message contains potentially dangerous content", "SECURITY_VIOLATION")
    return message.strip()


def validate_session_id(session_id: Any) -> str | None:
    """Return None for an absent id; otherwise require 8-36 chars of letters, digits, - and _."""
    if not session_id:
        return None
    if not isinstance(session_id, str) or not 8 <= len(session_id) <= 36:
        raise ValidationFailure("Session ID must be a string between 8-36 characters", "INVALID_SESSION_ID")
    if not _SESSION_ID_RE.match(session_id):
        raise ValidationFailure(
            "Session ID can only contain letters, numbers, hyphens, and underscores",
            "INVALID_SESSION_ID",
        )
    return session_id


# --- Operation batches ---

def _validate_string_param(name: str, value: Any, max_length: int) -> str:
    if value is None or value == "":
        raise ValidationFailure(f'Parameter "{name}" is required', "MISSING_REQUIRED_PARAM")
    if not isinstance(value, str):
        raise ValidationFailure(f'Parameter "{name}" must be a string', "INVALID_PARAM_TYPE")
    if len(value) > max_length:
        raise ValidationFailure(
            f'Parameter "{name}" too long. Maximum {max_length} characters', "PARAM_TOO_LONG"
        )
    return value


def _validate_search(params: Mapping[str, Any]) -> None:
    if not params.get("s"):
        raise ValidationFailure('Search parameter "s" is required', "MISSING_SEARCH_PARAM")
    _validate_string_param("s", params["s"], SEARCH_MAX_LENGTH)


def _validate_filter(params: Mapping[str, Any]) -> None:
    has_ingredient = bool(params.get("i"))
    has_category = bool(params.get("c"))
    if not has_ingredient and not has_category:
        raise ValidationFailure(
            "Filter requires either ingredient (i) or category (c) parameter", "MISSING_FILTER_PARAM"
        )
    if has_ingredient and has_category:
        raise ValidationFailure(
            "Filter can only use one parameter: ingredient (i) or category (c)", "TOO_MANY_FILTER_PARAMS"
        )
    if has_category:
        value = _validate_string_param("c", params["c"], CATEGORY_MAX_LENGTH)
        if value.strip().lower() not in CATEGORY_SET:
            raise ValidationFailure(
                f'Invalid category: "{value}". Valid options include: {", ".join(MEAL_CATEGORIES[:10])}...',
                "INVALID_ENUM_VALUE",
            )
    else:
        value = _validate_string_param("i", params["i"], INGREDIENT_MAX_LENGTH)
        if value.strip().lower() not in INGREDIENT_SET:
            raise ValidationFailure(
                f'Invalid ingredient: "{value}". Valid options include: {", ".join(COMMON_INGREDIENTS[:10])}...',
                "INVALID_ENUM_VALUE",
            )


def _validate_lookup(params: Mapping[str, Any]) -> None:
    meal_id = params.get("i")
    if not meal_id:
        raise ValidationFailure('Lookup parameter "i" (meal ID) is required', "MISSING_LOOKUP_PARAM")
    if not isinstance(meal_id, str) or not _MEAL_ID_RE.match(meal_id):
        raise ValidationFailure('Lookup parameter "i" must be a numeric meal ID', "INVALID_MEAL_ID")


_ENDPOINT_VALIDATORS = {
    Endpoint.SEARCH.value: _validate_search,
    Endpoint.FILTER.value: _validate_filter,
    Endpoint.LOOKUP.value: _validate_lookup,
}


def validate_operation(operation: Any) -> None:
    """Validate a single operation: endpoint allow-list, parameter set, per-endpoint rules."""
    if not isinstance(operation, Operation):
        raise ValidationFailure("API call must be an object", "INVALID_API_CALL")
    endpoint = operation.endpoint
    if not endpoint:
        raise ValidationFailure("Endpoint is required and must be a string", "INVALID_ENDPOINT")
    if endpoint not in ALLOWED_ENDPOINTS:
        raise ValidationFailure(f"Endpoint not allowed: {endpoint}", "ENDPOINT_NOT_ALLOWED")
    params = operation.params
    unknown = sorted(set(params) - ALLOWED_PARAMS[endpoint])
    if unknown:
        raise ValidationFailure(f"Unknown parameter(s) for {endpoint}: {', '.join(unknown)}", "UNKNOWN_PARAMETER")
    _ENDPOINT_VALIDATORS[endpoint](params)


def validate_operations(operations: Any, max_calls: int = MAX_API_CALLS) -> None:
    """
    Validate a batch before it reaches the batch executor.

    Raises ValidationFailure on the first violation; a per-item failure is
    reported with its index and keeps the item's reason code.
    """
    if not isinstance(operations, list):
        raise ValidationFailure("API calls must be an array", "INVALID_API_CALLS_FORMAT")
    if not operations:
        raise ValidationFailure("At least one API call is required", "NO_API_CALLS")
    if len(operations) > max_calls:
        raise ValidationFailure(f"Too many API calls. Maximum {max_calls} allowed", "TOO_MANY_API_CALLS")
    for index, operation in enumerate(operations):
        try:
            validate_operation(operation)
        except ValidationFailure as e:
            logger.info("[validators:validate_operations] rejected index=%d code=%s", index, e.code)
            raise ValidationFailure(f"Invalid API call at index {index}: {e.message}", e.code) from e
    logger.debug("[validators:validate_operations] OK count=%d", len(operations))
