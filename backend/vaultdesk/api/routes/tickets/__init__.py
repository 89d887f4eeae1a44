"""
Ticket Routes Module

Ticket-scoped endpoints organized by functionality:

- stored_request.py: Role lookup and the stored request draft
- decisions.py: Administrator reject

All routes are combined into a single router for inclusion in the API.
"""

from fastapi import APIRouter

from .schemas import ActionResponse, RejectRequest, RoleResponse, SaveStoredRequestRequest
from .stored_request import router as stored_request_router
from .decisions import router as decisions_router

router = APIRouter()
router.include_router(stored_request_router)
router.include_router(decisions_router)

__all__ = [
    "router",
    # Schemas
    "ActionResponse", "RejectRequest", "RoleResponse", "SaveStoredRequestRequest"
]
