"""
Scoreboard API
FastAPI backend for group scoring management
"""

import logging
import sys
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from scoreboard.database import engine, Base
import scoreboard.models  # noqa: F401
from scoreboard.middleware.cache_headers import CacheHeadersMiddleware
from scoreboard.routers import (
    auth_router,
    setup_router,
    users_router,
    groups_router,
    members_router,
    group_rules_router,
    scoring_rules_router,
    score_records_router,
    analytics_router,
    activity_logs_router,
    admin_router,
    cache_router,
)
from scoreboard.config import get_settings

settings = get_settings()

# Configure logging
log_level = logging.DEBUG if settings.environment == "development" else logging.INFO
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting Scoreboard API...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")
    yield
    logger.info("Shutdown complete")


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
            for error in exc.errors()
        ]
        first = errors[0] if errors else {"field": "request", "message": "Invalid request"}
        logger.warning("Validation error on %s %s: %s", request.method, request.url.path, errors)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": f"{first['field']}: {first['message']}", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


app = FastAPI(
    title="Scoreboard API",
    description="Multi-tenant group scoring API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CacheHeadersMiddleware, enabled=settings.emit_cache_headers)
# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "X-Cache-Invalidate"],
)
register_exception_handlers(app)

# Include routers
app.include_router(auth_router)
app.include_router(setup_router)
app.include_router(users_router)
app.include_router(groups_router)
app.include_router(members_router)
app.include_router(group_rules_router)
app.include_router(scoring_rules_router)
app.include_router(score_records_router)
app.include_router(analytics_router)
app.include_router(activity_logs_router)
app.include_router(admin_router)
app.include_router(cache_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Scoreboard API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "healthy",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
