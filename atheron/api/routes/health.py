"""
Health Check Routes - System health and monitoring endpoints.

These endpoints are used for:
1. Load balancer health checks
2. Readiness checks (database reachable, an LLM provider configured)
"""
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from atheron import __version__
from atheron.core.config import get_settings
from atheron.core.logging_config import get_logger
from atheron.database.connection import get_database
from atheron.models.chat import HealthResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check endpoint",
    description="Returns 200 OK while the process is up. Checks no dependencies."
)
async def health_check() -> HealthResponse:
    logger.debug("Health check requested")

    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.utcnow()
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness check endpoint",
    description="""
    Returns whether the service is ready to accept requests:
    - the conversation database answers
    - at least one LLM provider key is configured

    Returns 503 when either check fails.
    """
)
def readiness_check():
    logger.debug("Readiness check requested")

    settings = get_settings()
    database_ok = get_database().check_connection()
    llm_ok = any([settings.perplexity_api_key, settings.groq_api_key, settings.google_api_key])

    if database_ok and llm_ok:
        return HealthResponse(status="ready", version=__version__, timestamp=datetime.utcnow())

    logger.warning(f"Not ready: database={database_ok}, llm={llm_ok}")
    payload = HealthResponse(status="not_ready", version=__version__, timestamp=datetime.utcnow())
    return JSONResponse(status_code=503, content=payload.model_dump(mode="json"))
