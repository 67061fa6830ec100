# mentorship_engine/main.py
import logging
from fastapi import FastAPI

from .config import get_settings
from .database import create_db_and_tables
from .dependencies.service_dependencies import get_default_semantic_provider
from .routers import mentorship_router, mentor_router

settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL.upper(), format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Startup Mentorship Engine API",
    description="Mentor matching and mentorship lifecycle for incubator startups.",
    version="1.0.0",
)

# Include routers
app.include_router(mentorship_router.router)
app.include_router(mentor_router.router)

@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info("Application startup event triggered.")
    try:
        create_db_and_tables()
        provider = get_default_semantic_provider()
        logger.info(f"Semantic provider: {provider.PROVIDER_NAME} (available: {provider.available})")
        logger.info("Startup sequence completed successfully.")
    except Exception as e:
        logger.critical(f"Critical error during startup: {e}", exc_info=True)

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    provider = get_default_semantic_provider()
    return {
        "status": "healthy",
        "semantic_provider": provider.PROVIDER_NAME,
        "semantic_available": provider.available,
    }
