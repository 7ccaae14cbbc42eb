"""
Parsing of generation output into explicit variants.

The intent step may answer in two shapes: a batch of API calls as JSON
({"api_calls": [...]}) or plain conversational text. Parsing is two-step:
try to decode the JSON schema, and if that fails wrap the raw text as a
DirectResponse. Both are first-class results.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from chefsue.core.errors import ValidationFailure
from chefsue.schemas.operations import Operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectResponse:
    text: str


@dataclass(frozen=True)
class OperationBatch:
    operations: list[Operation]


IntentDecision = DirectResponse | OperationBatch


def _strip_code_fences(text: str) -> str:
    """Drop a surrounding Markdown ``` / ```json fence if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def operation_from_wire(item: Any) -> Operation:
    """Build an Operation from one decoded api_calls entry. Numeric params become strings."""
    if not isinstance(item, dict):
        raise ValidationFailure("API call must be an object", "INVALID_API_CALL")
    endpoint = item.get("endpoint")
    if not endpoint or not isinstance(endpoint, str):
        raise ValidationFailure("Endpoint is required and must be a string", "INVALID_ENDPOINT")
    params = item.get("params")
    if not isinstance(params, dict):
        raise ValidationFailure("Params are required and must be an object", "INVALID_PARAMS")
    normalized = {
        str(k): str(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v
        for k, v in params.items()
    }
    return Operation(endpoint=endpoint, params=normalized)


def decode_operation_batch(text: str) -> list[Operation] | None:
    """
    Return the operations if text is a JSON object with an "api_calls" list, else None.

    Raises ValidationFailure when the list is there but an entry is malformed.
    """
    cleaned = _strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("api_calls"), list):
        return None
    return [operation_from_wire(item) for item in data["api_calls"]]


def parse_intent_response(text: str) -> IntentDecision:
    operations = decode_operation_batch(text)
    if operations is None:
        logger.info("[responses:parse_intent] direct response len=%d", len((text or "").strip()))
        return DirectResponse((text or "").strip())
    logger.info("[responses:parse_intent] api_calls=%d", len(operations))
    return OperationBatch(operations)


def parse_selection_response(text: str) -> OperationBatch | None:
    """Selected lookups, or None when the output is unusable (not JSON, or an empty batch)."""
    operations = decode_operation_batch(text)
    if not operations:
        return None
    return OperationBatch(operations)
