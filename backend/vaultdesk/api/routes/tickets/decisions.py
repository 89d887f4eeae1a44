"""
Decision Routes

Administrator decisions on a ticket's request.
"""

from fastapi import APIRouter, Depends, HTTPException

from ...deps import get_correlation_id_dep, get_role_dep, get_stored_request_service
from ....domain.enums import Role
from ....domain.errors import DomainError
from ....services.stored_request_service import StoredRequestService
from ....utils.logger import get_logger
from .schemas import ActionResponse, RejectRequest

logger = get_logger(__name__)
router = APIRouter()


@router.post("/{ticket_id}/reject", response_model=ActionResponse)
async def reject_request(
    ticket_id: str,
    request: RejectRequest,
    role: Role = Depends(get_role_dep),
    service: StoredRequestService = Depends(get_stored_request_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Reject the request with a reason and discard the draft"""
    try:
        result = service.reject(ticket_id, request.reason, role=role)
        return ActionResponse(success=result.success, message=result.message)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
