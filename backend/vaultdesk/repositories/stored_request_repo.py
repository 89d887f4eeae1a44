"""Stored Request Repository - One pending request draft per ticket"""
from typing import Optional
from pymongo.collection import Collection

from .mongo_client import STORED_REQUESTS, get_collection
from ..domain.models import StoredRequest
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StoredRequestRepository:
    """Repository for stored request drafts"""

    def __init__(self, collection: Optional[Collection] = None):
        self._requests: Collection = collection if collection is not None else get_collection(STORED_REQUESTS)
        self._requests.create_index("ticket_id", unique=True)

    def save(self, ticket_id: str, request: StoredRequest) -> StoredRequest:
        """
        Save the draft for a ticket, replacing any earlier one

        Args:
            ticket_id: Ticket the draft belongs to
            request: Draft to store

        Returns:
            The stored draft with ticket_id set
        """
        stored = request.model_copy(update={"ticket_id": ticket_id})
        doc = stored.model_dump(mode="json")
        self._requests.replace_one({"ticket_id": ticket_id}, doc, upsert=True)
        logger.info(
            f"Saved stored request for ticket {ticket_id}",
            extra={"ticket_id": ticket_id, "action": stored.selected_action.value}
        )
        return stored

    def get(self, ticket_id: str) -> Optional[StoredRequest]:
        """Get the draft for a ticket"""
        doc = self._requests.find_one({"ticket_id": ticket_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return StoredRequest.model_validate(doc)

    def exists(self, ticket_id: str) -> bool:
        return self._requests.count_documents({"ticket_id": ticket_id}, limit=1) > 0

    def clear(self, ticket_id: str) -> bool:
        """Delete the draft for a ticket; True if one existed"""
        result = self._requests.delete_one({"ticket_id": ticket_id})
        if result.deleted_count:
            logger.info(f"Cleared stored request for ticket {ticket_id}", extra={"ticket_id": ticket_id})
        return result.deleted_count > 0
