"""Main application entry point."""
from fastapi import FastAPI
import logging

from certalert import __version__
from certalert.config import settings, configure_logging
from certalert.database import init_db
from certalert.scheduler import start_scheduler, stop_scheduler
from certalert.api.admin import router as admin_router


logger = logging.getLogger(__name__)

app = FastAPI(
    title="Certification Expiry Alert Engine",
    description="Tiered expiry reminders for worker safety certifications",
    version=__version__,
    debug=settings.debug
)

app.include_router(admin_router)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    configure_logging()
    logger.info("Application starting up...")

    init_db()

    if settings.scheduler_enabled:
        start_scheduler()
    else:
        logger.info("Scheduler disabled, daily expiry check must be triggered manually")

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Clean up on application shutdown."""
    stop_scheduler()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Certification Expiry Alert Engine"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    import os
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.debug
    )
