"""API Dependencies - Common dependencies for routes"""
from functools import lru_cache
from typing import Optional
from fastapi import Depends, Header

from ..domain.enums import Role
from ..services.stored_request_service import StoredRequestService
from ..services.vault_gateway import StaticSchemaSource
from ..utils.logger import set_correlation_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Get or generate correlation ID for request tracing

    If client provides X-Correlation-Id, use it.
    Otherwise generate a new one.
    """
    correlation_id = x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


async def get_user_email_dep(
    x_user_email: Optional[str] = Header(None, alias="X-User-Email")
) -> Optional[str]:
    """Email of the calling user as forwarded by the ticketing platform"""
    if not x_user_email or not x_user_email.strip():
        return None
    return x_user_email.strip().lower()


@lru_cache()
def get_stored_request_service() -> StoredRequestService:
    """Shared stored request service (connects to MongoDB on first use)"""
    return StoredRequestService()


@lru_cache()
def get_schema_source() -> StaticSchemaSource:
    return StaticSchemaSource()


async def get_role_dep(
    ticket_id: str,
    user_email: Optional[str] = Depends(get_user_email_dep),
    service: StoredRequestService = Depends(get_stored_request_service)
) -> Role:
    """Role of the caller on the ticket in the path"""
    return service.get_role(ticket_id, user_email).role
