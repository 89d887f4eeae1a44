"""Vault Gateway - Collaborator contracts consumed by the request session"""
import re
from typing import Any, Dict, Optional, Protocol

from ..config.settings import settings
from ..domain.enums import Role
from ..domain.errors import DomainError, VaultGatewayError
from ..domain.models import (
    ClearResult, ExecuteResult, RecordSchema, RejectResult, RoleInfo, SaveResult,
    StoredRequest, StoredSecretValue
)
from ..domain.record_templates import get_record_template
from ..utils.logger import get_logger

logger = get_logger(__name__)


class VaultGateway(Protocol):
    """
    Everything the session needs from the vault and the ticketing side

    Implementations raise VaultGatewayError (optionally carrying a status
    code) on transport failure and return None for absent results.
    """

    async def fetch_schema(self, record_type: str) -> Optional[RecordSchema]:
        ...

    async def fetch_secret_details(self, entity_id: str) -> Optional[StoredSecretValue]:
        ...

    async def fetch_role(self, ticket_id: str) -> RoleInfo:
        ...

    async def fetch_stored_request(self, ticket_id: str) -> Optional[StoredRequest]:
        ...

    async def save_stored_request(self, ticket_id: str, request: StoredRequest) -> SaveResult:
        ...

    async def clear_stored_request(self, ticket_id: str) -> ClearResult:
        ...

    async def execute(self, ticket_id: str, action: str, payload: Dict[str, Any]) -> ExecuteResult:
        ...

    async def reject(self, ticket_id: str, reason: str) -> RejectResult:
        ...

    async def resolve_reference(self, entity_id: str) -> Optional[StoredSecretValue]:
        ...


class StaticSchemaSource:
    """Schema lookup backed by the built-in record type templates"""

    async def fetch_schema(self, record_type: str) -> Optional[RecordSchema]:
        schema = get_record_template(record_type)
        if schema is None:
            logger.debug(f"No built-in template for {record_type}", extra={"record_type": record_type})
        return schema


# ============================================================================
# Failure messages
# ============================================================================

HTML_PATTERN = re.compile(r"</?[a-z][\s\S]*>", re.IGNORECASE)
STATUS_PATTERN = re.compile(r"\b(400|401|403|500|502|503|504)\b")

STATUS_TEXT = {
    400: "Bad Request (400)",
    401: "Unauthorized (401)",
    403: "Forbidden (403)",
    500: "Internal Server Error (500)",
    502: "Bad Gateway (502)",
    503: "Service Unavailable (503)",
    504: "Gateway Timeout (504)",
}

ADMINISTRATOR_GUIDANCE = (
    "Please verify that the vault service is running and that the integration URL "
    "and tunnel configuration are correct."
)
REQUESTER_GUIDANCE = (
    "You are not an administrator; please contact your administrator to check the integration."
)


def _usable_message(message: Optional[str]) -> Optional[str]:
    if not message or not message.strip():
        return None
    if HTML_PATTERN.search(message):
        return None
    if len(message) > settings.max_error_message_length:
        return None
    return message.strip()


def _status_code(error: Exception) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    match = STATUS_PATTERN.search(str(error))
    return int(match.group(1)) if match else None


def describe_failure(error: Exception, role: Role, default_message: str) -> str:
    """
    Human-readable message for a failed collaborator call

    Transport failures with a known status code get role-aware guidance;
    otherwise the error's own message is used unless it is HTML or an
    over-long dump, in which case the default message is returned.
    """
    if isinstance(error, VaultGatewayError):
        status = _status_code(error)
        if status in STATUS_TEXT:
            guidance = ADMINISTRATOR_GUIDANCE if role == Role.ADMINISTRATOR else REQUESTER_GUIDANCE
            return f"{STATUS_TEXT[status]} - Unable to reach the vault service. {guidance}"

    message = error.message if isinstance(error, DomainError) else str(error)
    return _usable_message(message) or default_message
