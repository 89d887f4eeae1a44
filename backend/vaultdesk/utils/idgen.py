"""ID Generation Utilities"""
import uuid
from typing import Optional

from ..config.settings import settings
from .time import utc_now


def generate_id(prefix: Optional[str] = None, length: int = 12) -> str:
    """
    Random hex ID with an optional prefix

    Examples:
        >>> generate_id('RTK')
        'RTK-a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:length]
    return f"{prefix}-{unique_part}" if prefix else unique_part


def generate_restore_token_id() -> str:
    return generate_id("RTK")


def generate_pending_reference_uid() -> str:
    """
    Placeholder UID for an address that will be created on execute.

    The prefix is what marks the UID as pending; it is swapped for the real
    record UID once the address exists.
    """
    return f"{settings.pending_reference_prefix}{generate_id(length=16)}"


def is_pending_reference_uid(uid: Optional[str]) -> bool:
    return bool(uid) and uid.startswith(settings.pending_reference_prefix)


def generate_correlation_id() -> str:
    """Correlation ID for request tracing, e.g. COR-20240305140709-1a2b3c4d"""
    return f"COR-{utc_now().strftime('%Y%m%d%H%M%S')}-{generate_id(length=8)}"
