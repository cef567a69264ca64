"""
Lessonboard Scheduling API Server

Week review, session lifecycle, teacher availability and payment webhook
endpoints for the tutoring marketplace. Every error leaves the API in one body shape:

    {"statusCode": 400, "statusMessage": "...", "error": {"code": "...", "message": "..."}}
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import config
from app.api.dependencies import close_services
from app.api.routes import availability, sessions, subscriptions, webhooks, weeks
from app.errors import SchedulingError
from app.services.scheduler import scheduler, start_scheduler, stop_scheduler

API_VERSION = "1.0.0"

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the session sync job on boot; stop it and release HTTP clients on exit"""
    logger.info(f"Lessonboard API starting (item store: {config.ITEM_STORE})")
    if config.SCHEDULER_ENABLED:
        start_scheduler()
    else:
        logger.info("SCHEDULER_ENABLED is off; expired sessions sync only via POST /api/sessions/sync-status")

    yield

    logger.info("Lessonboard API shutting down")
    if config.SCHEDULER_ENABLED:
        stop_scheduler()
    await close_services()


app = FastAPI(
    title="Lessonboard API",
    description="Lesson scheduling and approval workflow for the tutoring marketplace",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# Development CORS; the production frontend origin is set at the proxy
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, code: str, message: str, details: Optional[Any] = None) -> JSONResponse:
    """Render an error in the API's single error body shape"""
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"statusCode": status_code, "statusMessage": message, "error": error},
    )


@app.middleware("http")
async def time_requests(request: Request, call_next):
    """Log method, path, status and duration of every request"""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


@app.exception_handler(SchedulingError)
async def handle_scheduling_error(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal server error occurred",
        details=str(exc) if app.debug else None,
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness check.

    Reports the configured item store and whether the session sync job is
    running in this process.
    """
    return {
        "status": "ok",
        "service": "lessonboard-api",
        "version": API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "item_store": config.ITEM_STORE,
        "scheduler_running": scheduler.running,
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": "Lessonboard API",
        "version": API_VERSION,
        "docs": "/api/docs",
        "health": "/health"
    }


app.include_router(subscriptions.router)
app.include_router(weeks.router)
app.include_router(sessions.router)
app.include_router(webhooks.router)
app.include_router(availability.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
