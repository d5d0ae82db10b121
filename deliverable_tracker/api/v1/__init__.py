"""
API v1 - REST endpoints for deliverable progress and variations.

Implements:
- Progress endpoints (load for period, validate, update)
- Variation deliverable endpoints (view, add, hours edit, cancel)
- Numbering endpoints (next number per scheme)
- Gate endpoints (list)
"""
from fastapi import APIRouter

from .progress import router as progress_router
from .variation_deliverables import router as variation_deliverables_router
from .numbering import router as numbering_router
from .gates import router as gates_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(progress_router, prefix="/progress", tags=["Progress"])
api_router.include_router(variation_deliverables_router, prefix="/variations", tags=["Variations"])
api_router.include_router(numbering_router, prefix="/numbering", tags=["Numbering"])
api_router.include_router(gates_router, prefix="/gates", tags=["Gates"])
