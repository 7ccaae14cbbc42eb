"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Components take these as constructor defaults, so tests can inject
their own values without touching the environment.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


# Runtime environment: "development" exposes debug info in API responses
APP_ENV: str = os.getenv("APP_ENV", "development").strip().lower() or "development"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
ALLOWED_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()
]

# Generation backend (Bedrock-style invoke endpoint, bearer API key)
AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1").strip() or "us-east-1"
BEDROCK_API_KEY: str = os.getenv("AWS_BEARER_TOKEN_BEDROCK", "").strip()
BEDROCK_MODEL_ID: str = (
    os.getenv("BEDROCK_MODEL_ID", "mistral.mistral-7b-instruct-v0:2").strip()
    or "mistral.mistral-7b-instruct-v0:2"
)
BEDROCK_ENDPOINT_URL: str = (
    os.getenv("BEDROCK_ENDPOINT_URL", "").strip().rstrip("/")
    or f"https://bedrock-runtime.{AWS_REGION}.amazonaws.com"
)

# Generation sampling defaults
GENERATION_MAX_TOKENS: int = 2048
GENERATION_TEMPERATURE: float = 0.7
GENERATION_TOP_P: float = 0.9

# Recipe data source (TheMealDB)
MEALDB_BASE_URL: str = (
    os.getenv("MEALDB_BASE_URL", "https://www.themealdb.com/api/json/v1/1").strip().rstrip("/")
    or "https://www.themealdb.com/api/json/v1/1"
)

# API timeouts (seconds)
GENERATION_TIMEOUT: float = _env_float("GENERATION_TIMEOUT", 30.0)
RETRIEVAL_TIMEOUT: float = _env_float("RETRIEVAL_TIMEOUT", 30.0)
HEALTH_CHECK_TIMEOUT: float = 5.0
PIPELINE_TIMEOUT: float = _env_float("PIPELINE_TIMEOUT", 60.0)

# Pipeline limits
MAX_API_CALLS: int = _env_int("MAX_API_CALLS_PER_REQUEST", 5)
SELECTION_LIMIT: int = 3
FALLBACK_RECIPE_LIMIT: int = 3
MAX_MESSAGE_LENGTH: int = 500

# Sessions
MAX_CONVERSATION_LENGTH: int = _env_int("MAX_CONVERSATION_LENGTH", 10)
SESSION_TIMEOUT_MINUTES: int = _env_int("SESSION_TIMEOUT_MINUTES", 30)
SESSION_SWEEP_INTERVAL_MINUTES: int = _env_int("SESSION_SWEEP_INTERVAL_MINUTES", 15)
SESSION_ACTIVE_WINDOW_MINUTES: int = 5
