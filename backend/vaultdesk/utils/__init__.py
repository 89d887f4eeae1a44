"""Utility modules"""
from .logger import get_logger, setup_logging, redact_buffer
from .idgen import generate_id, generate_correlation_id, generate_pending_reference_uid, is_pending_reference_uid
from .time import utc_now, parse_iso

__all__ = [
    "get_logger",
    "setup_logging",
    "redact_buffer",
    "generate_id",
    "generate_correlation_id",
    "generate_pending_reference_uid",
    "is_pending_reference_uid",
    "utc_now",
    "parse_iso",
]
