# Run from project root: uvicorn chefsue.main:app --reload

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chefsue.agent.graph import RecipePipeline
from chefsue.agent.llm import GenerationClient
from chefsue.api.routes import route_not_found, router
from chefsue.core.config import ALLOWED_ORIGINS, APP_ENV, BEDROCK_MODEL_ID, LOG_LEVEL, MEALDB_BASE_URL
from chefsue.core.errors import ValidationFailure
from chefsue.core.session_store import SessionStore
from chefsue.services.mealdb_service import MealDBService

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    llm = GenerationClient()
    mealdb = MealDBService()
    sessions = SessionStore()
    sessions.start()
    app.state.pipeline = RecipePipeline(llm=llm, source=mealdb, sessions=sessions)
    logger.info("ChefSue Backend started env=%s model=%s mealdb=%s", APP_ENV, BEDROCK_MODEL_ID, MEALDB_BASE_URL)
    try:
        yield
    finally:
        sessions.stop()
        await llm.aclose()
        await mealdb.aclose()
        logger.info("ChefSue Backend stopped")


app = FastAPI(title="ChefSue Backend", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


# Input validation failures: 400 with a machine-readable code
@app.exception_handler(ValidationFailure)
async def _validation_failure(request: Request, exc: ValidationFailure) -> JSONResponse:
    logger.info("[api] rejected path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(status_code=400, content={"error": exc.message, "code": exc.code})


# Unknown routes: JSON 404 with a machine-readable code; other HTTP errors keep FastAPI's shape
@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        logger.info("[api] route not found %s %s", request.method, request.url.path)
        return route_not_found(request)
    return await http_exception_handler(request, exc)
