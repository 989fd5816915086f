"""Health check endpoint."""

import os
import sqlite3

from fastapi import APIRouter

from worship_chords import __version__
from worship_chords.config import settings
from worship_chords.logging_config import get_logger
from worship_chords.web import deps

logger = get_logger(__name__)
router = APIRouter()


def check_database() -> dict:
    """Check that the database answers a trivial query.

    Returns:
        Status dictionary
    """
    if deps.database is None:
        return {"status": "not_initialized"}
    try:
        deps.database.ping()
        return {"status": "healthy", "path": str(deps.database.db_path)}
    except sqlite3.Error as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}


def check_r2_connection() -> dict:
    """Check if R2 is configured.

    Returns:
        Status dictionary
    """
    if not settings.WC_R2_ENDPOINT_URL:
        return {"status": "not_configured"}
    if not os.environ.get("WC_R2_ACCESS_KEY_ID") or not os.environ.get("WC_R2_SECRET_ACCESS_KEY"):
        return {"status": "missing_credentials"}
    return {"status": "configured", "bucket": settings.WC_R2_BUCKET}


def check_llm_configuration() -> dict:
    if not settings.WC_LLM_API_KEY:
        return {"status": "missing_credentials"}
    return {"status": "configured", "model": settings.WC_LLM_MODEL}


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Service health status
    """
    database = check_database()
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "version": __version__,
        "services": {
            "database": database,
            "r2": check_r2_connection(),
            "llm": check_llm_configuration(),
        },
    }
