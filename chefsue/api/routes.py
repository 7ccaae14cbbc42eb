"""
API route aggregator: register endpoints; no logic, only delegate to handlers and the pipeline.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from chefsue.agent.graph import RecipePipeline
from chefsue.api.handlers import handle_chat, run_smoke_cases
from chefsue.core import config
from chefsue.schemas.chat import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)
router = APIRouter()

SERVICE_NAME = "ChefSue Backend"
SERVICE_VERSION = "1.0.0"


def get_pipeline(request: Request) -> RecipePipeline:
    """The pipeline built in the app lifespan (overridable in tests)."""
    return request.app.state.pipeline


def route_not_found(request: Request) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": f"Route {request.method} {request.url.path} not found", "code": "ROUTE_NOT_FOUND"},
    )


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": f"{SERVICE_NAME} running"}


@router.get("/health", tags=["system"], summary="Health of the service and its dependencies")
async def health(pipeline: RecipePipeline = Depends(get_pipeline)) -> JSONResponse:
    result = await pipeline.health_check()
    body = {
        "status": "healthy" if result["healthy"] else "unhealthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **result,
    }
    return JSONResponse(status_code=200 if result["healthy"] else 503, content=body)


@router.get("/stats", tags=["debug"], summary="Pipeline statistics (non-production only)")
def stats(request: Request, pipeline: RecipePipeline = Depends(get_pipeline)):
    if config.APP_ENV == "production":
        return route_not_found(request)
    return {"service": SERVICE_NAME, **pipeline.get_stats()}


# --- Chat ---

@router.post(
    "/api/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    tags=["chat"],
    summary="Process a cooking-related chat message",
    description="Runs the message through the recipe pipeline. 400 on invalid message or session id.",
)
async def post_chat(body: ChatRequest, pipeline: RecipePipeline = Depends(get_pipeline)) -> ChatResponse:
    return await handle_chat(pipeline, body, include_debug=config.APP_ENV == "development")


# --- Debug ---

@router.post("/api/test", tags=["debug"], summary="Run canned conversations through the pipeline (development only)")
async def smoke_test(request: Request, pipeline: RecipePipeline = Depends(get_pipeline)):
    if config.APP_ENV != "development":
        return route_not_found(request)
    return {
        "service": f"{SERVICE_NAME} Test Suite",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "results": await run_smoke_cases(pipeline),
    }
