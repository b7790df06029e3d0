"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter

from ..config import settings
from ..escalation import get_escalation_queue
from ..storage import get_db_pool
from ..storage.migrations import check_schema_exists

logger = logging.getLogger("pulsecheck.api.health")

router = APIRouter(tags=["Health"])


@router.get("/ping")
async def ping():
    """Simple endpoint to verify server is running."""
    return {"status": "ok", "message": "pong"}


@router.get("/health")
async def health():
    """Detailed health check with service status."""
    pool = get_db_pool()
    database = {"initialized": pool.is_initialized, "schema": False}
    if pool.is_initialized:
        try:
            database["schema"] = await check_schema_exists(pool)
        except Exception as e:
            logger.warning("Schema check failed: %s", e)
            database["error"] = str(e)

    queue = get_escalation_queue()
    degraded = not database["schema"] or (settings.escalation.enabled and not queue.is_running)
    return {
        "status": "degraded" if degraded else "ok",
        "services": {
            "database": database,
            "classifier": {"model": settings.classifier.model},
            "escalation": {
                "enabled": settings.escalation.enabled,
                "queue": queue.stats,
            },
        },
    }
