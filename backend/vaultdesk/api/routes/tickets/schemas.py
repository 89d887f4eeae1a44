"""
Ticket Schemas

Request and response models for the stored request, role and reject endpoints.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

from ....domain.enums import Role, StoredRequestStatus, VaultAction
from ....domain.models import PendingAddressData, SelectedEntities, StoredRequest
from ....utils.time import utc_now


# =============================================================================
# Role Schemas
# =============================================================================

class RoleResponse(BaseModel):
    """Caller's role on a ticket"""
    ticket_id: str
    is_administrator: bool
    role: Role
    display_name: Optional[str] = None


# =============================================================================
# Stored Request Schemas
# =============================================================================

class SaveStoredRequestRequest(BaseModel):
    """Draft submitted by the requester"""
    selected_action: VaultAction
    edit_buffer: Dict[str, Any] = Field(default_factory=dict)
    selected_entities: SelectedEntities = Field(default_factory=SelectedEntities)
    temp_address_data: Dict[str, PendingAddressData] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None

    def to_stored_request(self, ticket_id: str) -> StoredRequest:
        return StoredRequest(
            ticket_id=ticket_id,
            selected_action=self.selected_action,
            edit_buffer=self.edit_buffer,
            selected_entities=self.selected_entities,
            temp_address_data=self.temp_address_data,
            timestamp=self.timestamp or utc_now(),
            status=StoredRequestStatus.PENDING,
        )


class RejectRequest(BaseModel):
    """Administrator rejection"""
    reason: str = Field(..., max_length=2000)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        return v.strip()


class ActionResponse(BaseModel):
    """Generic action response"""
    success: bool
    message: Optional[str] = None
