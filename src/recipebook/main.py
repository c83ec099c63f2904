"""FastAPI application entry point."""

import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from recipebook import __version__
from recipebook.config import get_settings
from recipebook.extraction import GeminiRecipeExtractor
from recipebook.logging_config import LoggingContext, configure_logging, get_logger
from recipebook.routers import quantities_router, recipes_router
from recipebook.services import RecipeLibrary
from recipebook.store import create_store

settings = get_settings()

# Configure logging on module load
configure_logging(settings.log_level, json_format=None if settings.is_development else True)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(f"Starting Recipebook API with {settings.storage_backend} storage")

    store = create_store(settings)
    extractor = GeminiRecipeExtractor()
    app.state.library = RecipeLibrary(store, extractor)

    if not await store.health_check():
        logger.warning(f"Recipe store '{store.name}' is not reachable at startup")
    if not extractor.api_key:
        logger.warning("GEMINI_API_KEY is not set; recipe import is disabled")

    yield

    logger.info("Shutting down Recipebook API")
    await store.close()


app = FastAPI(
    title="Recipebook API",
    description="Digitize, scale and annotate recipes from photos and PDFs",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag every log line of a request with a request id."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    with LoggingContext(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(recipes_router)
app.include_router(quantities_router)


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "ok", "service": "recipebook-api"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Recipebook API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
