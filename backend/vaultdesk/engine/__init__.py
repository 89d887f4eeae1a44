"""Request Engine - Field synthesis, mapping and the approval state machine"""
from .template_compiler import TemplateCompiler, compile_template
from .field_mapper import FieldMapper, map_values_to_fields
from .record_type_transition import RecordTypeTransitionController, TransitionOutcome
from .address_cache import AddressCache, format_address_display
from .restore_guard import RestoreGuard
from .workflow_machine import apply_event, can_apply, initial_state
from .validators import RequestValidator, validate_request
from .payload_builder import build_execution_payload

__all__ = [
    "TemplateCompiler",
    "compile_template",
    "FieldMapper",
    "map_values_to_fields",
    "RecordTypeTransitionController",
    "TransitionOutcome",
    "AddressCache",
    "format_address_display",
    "RestoreGuard",
    "apply_event",
    "can_apply",
    "initial_state",
    "RequestValidator",
    "validate_request",
    "build_execution_payload",
]
