# cityhub/main.py
# Application assembly: logging, shared HTTP client, history store, routers.

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import httpx
import structlog
import uuid

from cityhub.core.config import settings
from cityhub.logging import configure_logging
from cityhub.middleware.logging import LoggingMiddleware
from cityhub.api.routes import router as api_router
from cityhub.api.live import router as live_router
from cityhub.services.redis_client import build_history_store

configure_logging()
logger = structlog.get_logger(__name__)

# --- Application Lifecycle Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("application_startup", version=settings.VERSION, env=settings.ENV)

    # One pooled client for every upstream call (geocoding, forecast, Unsplash, news)
    app.state.http_client = httpx.AsyncClient(
        timeout=settings.UPSTREAM_TIMEOUT,
        headers={"User-Agent": f"{settings.PROJECT_NAME}/{settings.VERSION}"},
    )
    app.state.history_store = build_history_store()

    yield

    logger.info("application_shutdown")
    await app.state.http_client.aclose()
    redis_client = getattr(app.state.history_store, "redis_client", None)
    if redis_client is not None:
        await redis_client.aclose()

# --- FastAPI Application Initialization ---
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.BRIEF_DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)

# --- API Routes ---
app.include_router(api_router, prefix="/api")
app.include_router(live_router)

# --- Health Check Endpoint ---
@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    return {
        "status": "ok",
        "history_store": request.app.state.history_store.backend,
    }

# --- Global Exception Handler (for unhandled errors) ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())
    logger.error("unhandled_exception", error_id=error_id, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "error": "INTERNAL_SERVER_ERROR",
                "detail": "An unexpected error occurred. Please report this error ID.",
                "error_id": error_id
            }
        }
    )
