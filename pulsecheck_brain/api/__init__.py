"""
API routers for PulseCheck Brain.
"""

from fastapi import APIRouter

from .escalation import router as escalation_router
from .health import router as health_router

# Main router that aggregates all sub-routers
router = APIRouter()

router.include_router(health_router)
router.include_router(escalation_router)
