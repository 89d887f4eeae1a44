"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .stored_request_repo import StoredRequestRepository

__all__ = [
    "get_database",
    "get_collection",
    "StoredRequestRepository",
]
