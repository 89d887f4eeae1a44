"""API Routes module"""
from fastapi import APIRouter

from .record_types import router as record_types_router
from .tickets import router as tickets_router

# Main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(record_types_router, prefix="/record-types", tags=["Record Types"])
api_router.include_router(tickets_router, prefix="/tickets", tags=["Tickets"])

__all__ = ["api_router"]
