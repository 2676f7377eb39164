"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance.
It handles:
1. Application initialization
2. Router registration
3. Middleware configuration (audit logging, security headers, CORS)
4. Exception handlers
5. Startup/shutdown events

Run with: uvicorn atheron.api.main:app --reload
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from atheron import __version__
from atheron.core.config import get_settings
from atheron.core.logging_config import setup_logging, get_logger
from atheron.core.exceptions import AtheronException, RateLimitExceeded
from atheron.core.audit import AuditMiddleware, SecurityHeadersMiddleware
from atheron.api.routes import chat_router, health_router, sessions_router
from atheron.database.connection import get_database
from atheron.database.init_db import init_tables


# Initialize logging before anything else
settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: create missing conversation tables
    - Shutdown: close database connections
    """
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    logger.info(f"LLM Model: {settings.llm_model} (fallbacks: {settings.llm_model_fallback}, {settings.llm_model_google})")
    logger.info(f"Rate Limit: {settings.rate_limit_per_minute} req/min")
    logger.info(f"Audit Logging: {settings.enable_audit_logging}")

    init_tables()

    yield  # Application runs here

    logger.info(f"Shutting down {settings.app_name}")
    get_database().close()


# Create FastAPI application
app = FastAPI(
    title="Atheron API",
    description="""
    Backend of Atheron, a space and STEM chat assistant ("Athey").

    ## Features

    - **Streamed answers** from a search-capable model with provider fallback
    - **Sources**: answers end with a machine-readable citation block
    - **Chat history**: sessions and messages per user, titled automatically
    - **Rate limiting** per user
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================
# Middleware Configuration (Order matters!)
# ============================================================

app.add_middleware(SecurityHeadersMiddleware)

if settings.enable_audit_logging:
    app.add_middleware(AuditMiddleware)
    logger.info("Audit logging middleware enabled")

if settings.is_development():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-Id", "X-RateLimit-Remaining"],
    )
    logger.warning("CORS configured for development (all origins allowed)")


# ============================================================
# Exception Handlers
# ============================================================

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(exc.retry_after)}
    )


@app.exception_handler(AtheronException)
async def atheron_exception_handler(request: Request, exc: AtheronException):
    """Handle all custom Atheron exceptions."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions globally.

    Detailed error information is only included in development mode.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": str(exc) if settings.is_development() else None,
        }
    )


# ============================================================
# Routers
# ============================================================

app.include_router(health_router)
app.include_router(chat_router)
app.include_router(sessions_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "Atheron API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "atheron.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development()
    )
