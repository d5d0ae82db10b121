"""
Main FastAPI Application for the Deliverable Tracker.
Provides REST endpoints for progress reporting and variation deliverables.
"""
import logging

from fastapi import FastAPI

from deliverable_tracker.config import get_config
from deliverable_tracker.models import init_db, get_db
from deliverable_tracker.api.v1 import api_router as v1_router

_config = get_config()
logging.basicConfig(level=_config.log_level, format=_config.log_format)
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title="Deliverable Tracker",
    description="Deliverable progress validation and variation lifecycle",
    version=_config.version
)

app.include_router(v1_router)


# Initialize database on startup
@app.on_event("startup")
async def startup_event():
    init_db()
    logger.info("Deliverable Tracker started with database %s", _config.database_url)


@app.get("/health")
def health():
    return {"status": "ok", "version": _config.version}


__all__ = ['app', 'get_db']
