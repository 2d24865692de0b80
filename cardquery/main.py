"""
FastAPI application entry point for the Card Query backend.

This module creates the FastAPI app instance, wires the lifespan that builds
the dataset / Gemini client / query strategy, and registers all routers and
error handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cardquery import __version__
from cardquery.config import settings
from cardquery.data.dataset import load_dataset
from cardquery.routes.health import router as health_router
from cardquery.routes.query import router as query_router
from cardquery.services.llm_client import GeminiStreamClient
from cardquery.services.query_service import build_query_strategy

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

QUERY_VALIDATION_MESSAGE = "Query is required and must be a string"


def _get_cors_origins() -> list[str]:
    """
    Get allowed CORS origins based on environment.

    Environment-based configuration:
    - ENVIRONMENT=production: Uses CORS_ALLOWED_ORIGINS env var
    - anything else: Allows all origins for local dev and web frontends

    Returns:
        List of allowed origin URLs, or ["*"] outside production.
    """
    if settings.is_production():
        origins = settings.CORS_ALLOWED_ORIGINS
        if origins:
            logger.info(f"CORS configured for production with {len(origins)} allowed origins")
        else:
            logger.warning(
                "CORS_ALLOWED_ORIGINS not set in production. "
                "No web origins allowed. Set CORS_ALLOWED_ORIGINS for web clients."
            )
        return origins

    logger.info(f"CORS configured for {settings.ENVIRONMENT}: allowing all origins")
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build process-wide collaborators on startup and release them on shutdown."""
    dataset = load_dataset(settings.CARD_DATASET_PATH or None)
    llm_client = GeminiStreamClient(api_key=settings.GOOGLE_API_KEY, model=settings.GEMINI_MODEL)

    app.state.dataset = dataset
    app.state.llm_client = llm_client
    app.state.query_strategy = build_query_strategy(
        settings.QUERY_STRATEGY,
        llm=llm_client,
        dataset=dataset,
        prompt_card_limit=settings.PROMPT_CARD_LIMIT,
    )
    logger.info(
        f"Card Query API started: {len(dataset)} cards, strategy={settings.QUERY_STRATEGY}"
    )

    yield

    logger.info("Shutting down Card Query API")
    app.state.query_strategy = None
    llm_client.close()


# Create FastAPI app
app = FastAPI(
    title="Card Query API",
    description="Streams LLM-assisted credit card recommendations",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


def _jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input and context (may not be JSON-safe)."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Reject invalid request bodies with 400 before any stream is opened.
    """
    logger.error(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": QUERY_VALIDATION_MESSAGE,
            "details": _jsonable_errors(exc),
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # An unmatched method on a known path is an unmatched route too
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Route not found"})

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last-resort handler: never leak details outside development."""
    logger.error(f"Global error handler: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.is_development() else "Something went wrong",
        }
    )


# Configure CORS with environment-based origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router)
app.include_router(query_router)

logger.info("FastAPI app initialized successfully")
