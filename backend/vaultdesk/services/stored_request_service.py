"""Stored Request Service - Server side of the stored request and role contracts"""
from typing import Optional

from ..config.settings import settings
from ..domain.enums import Role, WorkflowEvent, WorkflowState
from ..domain.errors import RoleNotPermittedError, StoredRequestNotFoundError, ValidationError
from ..domain.models import ClearResult, RejectResult, RoleInfo, SaveResult, StoredRequest
from ..engine.workflow_machine import apply_event, initial_state
from ..repositories.stored_request_repo import StoredRequestRepository
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


class StoredRequestService:
    """
    Per-ticket stored requests with role gating

    Uses the same workflow rules as the edit session, so a ticket without a
    stored request can only get its first one from a requester and only an
    administrator can reject.
    """

    def __init__(self, repo: Optional[StoredRequestRepository] = None):
        self.repo = repo or StoredRequestRepository()

    # =========================================================================
    # Role lookup
    # =========================================================================

    def get_role(self, ticket_id: str, user_email: Optional[str]) -> RoleInfo:
        """Administrator if the caller's email is configured as one"""
        email = (user_email or "").strip().lower()
        is_administrator = bool(email) and email in settings.administrator_emails_list
        logger.debug(
            f"Role lookup for {email or 'anonymous'}",
            extra={"ticket_id": ticket_id, "role": "ADMINISTRATOR" if is_administrator else "REQUESTER"}
        )
        return RoleInfo(is_administrator=is_administrator, display_name=email or None)

    # =========================================================================
    # Stored request CRUD
    # =========================================================================

    def get(self, ticket_id: str) -> StoredRequest:
        stored = self.repo.get(ticket_id)
        if stored is None:
            raise StoredRequestNotFoundError(f"No stored request for ticket {ticket_id}")
        return stored

    def save(
        self,
        ticket_id: str,
        request: StoredRequest,
        role: Role,
        submitted_by: Optional[str] = None
    ) -> SaveResult:
        """Create or overwrite the ticket's stored request"""
        self._check(ticket_id, WorkflowEvent.SAVE, role)
        updates = {"ticket_id": ticket_id, "timestamp": request.timestamp or utc_now()}
        if submitted_by:
            updates["submitted_by"] = submitted_by
        self.repo.save(ticket_id, request.model_copy(update=updates))
        return SaveResult(success=True, message="Request saved for administrator review")

    def clear(self, ticket_id: str, role: Role) -> ClearResult:
        """Discard the ticket's stored request"""
        if role == Role.REQUESTER:
            self._check(ticket_id, WorkflowEvent.CLEAR, role)
        removed = self.repo.clear(ticket_id)
        if not removed:
            raise StoredRequestNotFoundError(f"No stored request for ticket {ticket_id}")
        return ClearResult(success=True, message="Stored request cleared")

    def reject(self, ticket_id: str, reason: str, role: Role) -> RejectResult:
        """Reject the ticket's request and discard the draft"""
        if not reason or not reason.strip():
            raise ValidationError(
                "A rejection reason is required",
                details={"field_errors": [{"field": "reason", "message": "Enter a reason for rejecting"}]}
            )
        if role != Role.ADMINISTRATOR:
            raise RoleNotPermittedError("Only an administrator can reject a request")
        self._check(ticket_id, WorkflowEvent.REJECT, role)
        self.repo.clear(ticket_id)
        logger.info(f"Rejected request: {reason.strip()}", extra={"ticket_id": ticket_id})
        return RejectResult(success=True, message="Request rejected")

    def _check(self, ticket_id: str, event: WorkflowEvent, role: Role) -> WorkflowState:
        exists = self.repo.exists(ticket_id)
        state = initial_state(role, has_stored_request=exists)
        if exists and event == WorkflowEvent.REJECT:
            state = apply_event(state, WorkflowEvent.OPEN_STORED, role, has_stored_request=True)
        return apply_event(state, event, role, has_stored_request=exists)
