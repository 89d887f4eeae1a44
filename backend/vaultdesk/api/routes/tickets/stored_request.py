"""
Stored Request Routes

Role lookup and the per-ticket stored request draft.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException

from ...deps import (
    get_correlation_id_dep, get_role_dep, get_stored_request_service, get_user_email_dep
)
from ....domain.enums import Role
from ....domain.errors import DomainError
from ....domain.models import StoredRequest
from ....services.stored_request_service import StoredRequestService
from ....utils.logger import get_logger
from .schemas import ActionResponse, RoleResponse, SaveStoredRequestRequest

logger = get_logger(__name__)
router = APIRouter()


@router.get("/{ticket_id}/role", response_model=RoleResponse)
async def get_ticket_role(
    ticket_id: str,
    user_email: Optional[str] = Depends(get_user_email_dep),
    service: StoredRequestService = Depends(get_stored_request_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Whether the caller administers this ticket"""
    info = service.get_role(ticket_id, user_email)
    return RoleResponse(
        ticket_id=ticket_id,
        is_administrator=info.is_administrator,
        role=info.role,
        display_name=info.display_name
    )


@router.get("/{ticket_id}/stored-request", response_model=StoredRequest)
async def get_stored_request(
    ticket_id: str,
    service: StoredRequestService = Depends(get_stored_request_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get the ticket's saved draft"""
    try:
        return service.get(ticket_id)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.put("/{ticket_id}/stored-request", response_model=ActionResponse)
async def save_stored_request(
    ticket_id: str,
    request: SaveStoredRequestRequest,
    role: Role = Depends(get_role_dep),
    user_email: Optional[str] = Depends(get_user_email_dep),
    service: StoredRequestService = Depends(get_stored_request_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Save the ticket's draft, replacing any earlier one

    Only requesters save; there is at most one draft per ticket.
    """
    try:
        result = service.save(
            ticket_id,
            request.to_stored_request(ticket_id),
            role=role,
            submitted_by=user_email
        )
        logger.info(
            f"Stored request saved for ticket {ticket_id}",
            extra={"ticket_id": ticket_id, "action": request.selected_action.value}
        )
        return ActionResponse(success=result.success, message=result.message)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/{ticket_id}/stored-request", response_model=ActionResponse)
async def clear_stored_request(
    ticket_id: str,
    role: Role = Depends(get_role_dep),
    service: StoredRequestService = Depends(get_stored_request_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Discard the ticket's draft"""
    try:
        result = service.clear(ticket_id, role=role)
        return ActionResponse(success=result.success, message=result.message)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
