"""API module - Routes and dependencies"""
from .deps import get_correlation_id_dep, get_user_email_dep, get_stored_request_service

__all__ = ["get_correlation_id_dep", "get_user_email_dep", "get_stored_request_service"]
