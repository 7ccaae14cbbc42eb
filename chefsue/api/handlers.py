"""
API handlers: validate request data, call the pipeline, shape the response.

Responsibility: Bridge HTTP types and the pipeline. ValidationFailure raised
here is turned into a 400 by the exception handler registered in main.
"""

import logging

from chefsue.agent.graph import RecipePipeline
from chefsue.core.validators import validate_session_id, validate_user_message
from chefsue.schemas.chat import ChatRequest, ChatResponse, DebugInfo, ErrorInfo

logger = logging.getLogger(__name__)


async def handle_chat(pipeline: RecipePipeline, body: ChatRequest, include_debug: bool = False) -> ChatResponse:
    """
    Validate message and session id (ValidationFailure on bad input), run the pipeline, shape the response.
    The pipeline itself never raises; a degraded answer is still a 200.
    """
    message = validate_user_message(body.message)
    session_id = validate_session_id(body.session_id)

    logger.info("[api:handle_chat] IN  message=%r session_id=%s", message[:100], session_id or "new")
    outcome = await pipeline.process(message, session_id)
    logger.info(
        "[api:handle_chat] OUT time_ms=%d api_calls=%d phases=%s recipes=%d",
        outcome.processing_time_ms,
        outcome.api_calls_made,
        ", ".join(outcome.phases_executed) or "error",
        outcome.recipe_data_found,
    )

    response = ChatResponse(message=outcome.message, session_id=outcome.session_id)
    if include_debug:
        response.debug = DebugInfo(
            processing_time_ms=outcome.processing_time_ms,
            api_calls_made=outcome.api_calls_made,
            phases_executed=outcome.phases_executed,
            recipe_data_found=outcome.recipe_data_found,
        )
        if outcome.error:
            response.error = ErrorInfo(message=outcome.error_message)
    return response


# Canned conversations for the development smoke endpoint
SMOKE_CASES: list[dict[str, str]] = [
    {"message": "Hello", "description": "Simple greeting"},
    {"message": "chicken recipes", "description": "Basic recipe search"},
    {"message": "vegetarian pasta dishes", "description": "Filter search"},
    {"message": "healthy breakfast options", "description": "Complex query"},
]
SMOKE_PREVIEW_CHARS = 200


async def run_smoke_cases(pipeline: RecipePipeline) -> list[dict]:
    """Run each canned message through the pipeline, one fresh session per case."""
    results = []
    for case in SMOKE_CASES:
        logger.debug("[api:run_smoke_cases] testing: %s", case["description"])
        outcome = await pipeline.process(case["message"])
        entry = {**case, "success": not outcome.error}
        if outcome.error:
            entry["error"] = outcome.error_message
        else:
            entry.update(
                response=outcome.message[:SMOKE_PREVIEW_CHARS] + "...",
                processingTime=outcome.processing_time_ms,
                apiCalls=outcome.api_calls_made,
                phases=outcome.phases_executed,
            )
        results.append(entry)
    return results
