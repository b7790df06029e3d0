"""
PulseCheck Brain - Chat Safety Escalation Server

The main FastAPI application entry point.
"""

# Load .env file FIRST, before any other imports
# .env.local overrides .env for machine-specific settings (API keys, ports, etc.)
from pathlib import Path
from dotenv import load_dotenv
_env_root = Path(__file__).parent.parent
load_dotenv(_env_root / ".env", override=True)
load_dotenv(_env_root / ".env.local", override=True)

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import router as api_router
from .config import settings
from .escalation import get_escalation_orchestrator, get_escalation_queue
from .storage import db_settings, get_db_pool
from .storage.database import init_database, close_database
from .storage.migrations import run_migrations

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("pulsecheck.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Handles startup (database, migrations, escalation workers) and
    shutdown (queue drain, cleanup).
    """
    # --- Startup ---
    logger.info("PulseCheck Brain starting up...")

    # Initialize database connection pool
    if db_settings.enabled:
        try:
            await init_database()
            logger.info("Database connection pool initialized")
            if db_settings.run_migrations and get_db_pool().is_initialized:
                await run_migrations(get_db_pool())
        except Exception as e:
            logger.error("Failed to initialize database: %s", e)
            # Continue without database - classification still runs with
            # fallback context, but incidents cannot be recorded

    # Start background escalation workers
    queue = get_escalation_queue()
    if settings.escalation.enabled:
        queue.start()
    else:
        logger.info("Escalation classification disabled")

    logger.info("PulseCheck Brain startup complete")

    yield  # Application runs here

    # --- Shutdown ---
    logger.info("PulseCheck Brain shutting down...")

    # Drain pending classification jobs
    try:
        await queue.shutdown(timeout=settings.escalation.shutdown_timeout_seconds)
    except Exception as e:
        logger.error("Error shutting down escalation queue: %s", e)

    # Close classifier HTTP client
    try:
        await get_escalation_orchestrator().classifier.aclose()
    except Exception as e:
        logger.error("Error closing classifier client: %s", e)

    # Close database connection pool
    if db_settings.enabled:
        try:
            await close_database()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.error("Error closing database: %s", e)

    logger.info("PulseCheck Brain shutdown complete")


# Create the FastAPI application
app = FastAPI(
    title="PulseCheck Brain",
    description="Tiered safety escalation for the PulseCheck coaching chat.",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers with /api/v1 prefix
app.include_router(api_router, prefix="/api/v1")
