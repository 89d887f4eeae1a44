"""Service modules - Business logic layer"""
from .vault_gateway import VaultGateway, StaticSchemaSource, describe_failure
from .request_session import RequestSession
from .stored_request_service import StoredRequestService

__all__ = [
    "VaultGateway",
    "StaticSchemaSource",
    "describe_failure",
    "RequestSession",
    "StoredRequestService",
]
