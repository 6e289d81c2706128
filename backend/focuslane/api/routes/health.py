"""
Health check endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from focuslane import __version__
from focuslane.core.completion_client import (CompletionConfigError,
                                              get_completion_client)
from focuslane.core.config import get_settings
from focuslane.core.database import get_db
from focuslane.core.logging_config import LoggingConfig
from focuslane.utils.datetime_utils import utc_now

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint

    Returns:
        dict: Health status
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": get_settings().app_name,
    }


@router.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Health check including the database connection
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.app_name,
        "version": __version__,
        "environment": settings.app_env,
        "components": {},
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {"status": "healthy"}
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        health_status["status"] = "degraded"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "error": type(e).__name__,
        }

    try:
        get_completion_client().resolve_api_key()
        credential_status = "configured"
    except CompletionConfigError:
        credential_status = "missing_credential"
    health_status["components"]["completion_api"] = {
        "status": credential_status,
        "model": settings.completion_model,
    }
    health_status["log_metrics"] = LoggingConfig.get_metrics()
    return health_status

