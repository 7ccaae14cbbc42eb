"""Schemas for the chat endpoint and the pipeline outcome it wraps."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """One conversation entry. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class PipelineOutcome(BaseModel):
    """Result of one pipeline run. Always well-formed, even on failure."""

    message: str = Field(..., description="Final text shown to the user.")
    session_id: str = Field(..., description="Session the exchange was recorded under.")
    processing_time_ms: int = Field(0, description="Wall-clock time spent in the pipeline.")
    api_calls_made: int = Field(0, description="Recipe API calls attempted across all phases.")
    phases_executed: list[str] = Field(default_factory=list, description="Pipeline phases that ran, in order.")
    recipe_data_found: int = Field(0, description="Recipes available to the final answer.")
    degraded: bool = Field(False, description="A fallback or failure shaped the answer.")
    error: bool = Field(False, description="A hard failure was caught at the pipeline boundary.")
    error_category: str | None = Field(None, description="validation, unavailable, timeout or generic.")
    error_message: str | None = Field(None, description="Diagnostic text of the caught error.")


class ChatRequest(BaseModel):
    """Request body for POST /api/chat. History is stored server-side by sessionId."""

    model_config = ConfigDict(populate_by_name=True)

    # Any: type errors are reported by validate_user_message / validate_session_id as 400s
    message: Any = Field(None, description="User message for cooking assistance.")
    session_id: Any = Field(
        None,
        alias="sessionId",
        description="Optional session ID to keep conversation context.",
    )


class DebugInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    processing_time_ms: int = Field(0, serialization_alias="processingTime")
    api_calls_made: int = Field(0, serialization_alias="apiCallsMade")
    phases_executed: list[str] = Field(default_factory=list, serialization_alias="phasesExecuted")
    recipe_data_found: int = Field(0, serialization_alias="recipeDataFound")


class ErrorInfo(BaseModel):
    occurred: bool = True
    message: str | None = None


class ChatResponse(BaseModel):
    """Response for POST /api/chat. debug/error are filled in development only."""

    message: str = Field(..., description="Assistant reply.")
    session_id: str = Field(..., serialization_alias="sessionId", description="Session ID for conversation continuity.")
    timestamp: datetime = Field(default_factory=_utcnow)
    debug: DebugInfo | None = None
    error: ErrorInfo | None = None
