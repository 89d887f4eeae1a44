"""MongoDB Client - Lazily opened connection for the stored request collection"""
import time
from typing import Any, Dict, Optional
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

STORED_REQUESTS = "stored_requests"

# Opened on first use, dropped by close_connection()
_client: Optional[MongoClient] = None


def masked_uri(uri: str) -> str:
    """Connection string with the user:password part replaced, for log lines"""
    scheme, separator, rest = uri.partition("://")
    if not separator or "@" not in rest:
        return uri
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"


def _connect() -> MongoClient:
    global _client
    if _client is not None:
        return _client

    logger.info(f"Opening MongoDB connection to {masked_uri(settings.mongo_uri)}")
    client = MongoClient(
        settings.mongo_uri,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=5000,
        socketTimeoutMS=30000,
        appname="vault-request-desk",
    )
    try:
        client.admin.command("ping")
    except ConnectionFailure as e:
        client.close()
        logger.error(f"MongoDB is not reachable: {e}")
        raise
    _client = client
    return _client


def get_database() -> Database:
    """Database holding the stored request drafts"""
    return _connect()[settings.mongo_db]


def get_collection(name: str = STORED_REQUESTS) -> Collection:
    return get_database()[name]


def create_indexes() -> None:
    """
    Ensure the stored request indexes exist

    ticket_id is unique: a ticket holds at most one draft and saving again
    replaces it.
    """
    drafts = get_collection(STORED_REQUESTS)
    drafts.create_index("ticket_id", unique=True)
    drafts.create_index([("status", 1), ("timestamp", -1)])
    logger.info(f"Indexes ready on {settings.mongo_db}.{STORED_REQUESTS}")


def close_connection() -> None:
    global _client
    if _client is None:
        return
    _client.close()
    _client = None
    logger.info("MongoDB connection closed")


def health_check() -> Dict[str, Any]:
    """Ping MongoDB and report round-trip time"""
    started = time.perf_counter()
    try:
        _connect().admin.command("ping")
    except PyMongoError as e:
        logger.warning(f"MongoDB health check failed: {e}")
        return {"status": "unhealthy", "database": settings.mongo_db, "error": str(e)}
    return {
        "status": "healthy",
        "database": settings.mongo_db,
        "ping_ms": round((time.perf_counter() - started) * 1000, 1),
    }
