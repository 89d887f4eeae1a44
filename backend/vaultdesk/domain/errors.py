"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authorization Errors
class AuthorizationError(DomainError):
    """Actor lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class RoleNotPermittedError(AuthorizationError):
    """The ticket role may not perform this workflow step"""
    error_code = "ROLE_NOT_PERMITTED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class StoredRequestNotFoundError(NotFoundError):
    """No stored request exists for the ticket"""
    error_code = "STORED_REQUEST_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict"""
    error_code = "CONFLICT"
    http_status = 409


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class WorkflowTransitionError(InvalidStateError):
    """No workflow transition for the event in the current state"""
    error_code = "WORKFLOW_TRANSITION_NOT_ALLOWED"


class SessionLockedError(InvalidStateError):
    """Session is cooling down after an execute"""
    error_code = "SESSION_LOCKED"


# External Service Errors
class ExternalServiceError(DomainError):
    """External service failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class VaultGatewayError(ExternalServiceError):
    """
    Failure raised by a vault/ticket collaborator.

    status_code is whatever the transport reported, if anything; the core
    only passes it on to the guidance text builder.
    """
    error_code = "VAULT_GATEWAY_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details=details)
        self.status_code = status_code
