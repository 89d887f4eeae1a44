"""Record Type Transition - Rebuilds the edit buffer when the record type changes"""
import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from ..domain.enums import InputKind, TransitionPolicy, VaultAction
from ..domain.models import (
    CustomField, FieldDescriptor, MappingResult,
    ADDRESS_REF_KEY, CORE_KEYS, RECORD_KEY, RECORD_TYPE_KEY, TITLE_KEY
)
from ..utils.logger import get_logger
from .field_mapper import CustomFieldCollector
from .template_compiler import clean_field_name

logger = get_logger(__name__)


# Keys the session writes for its own bookkeeping; never carried forward
INTERNAL_KEY_PREFIXES = ("_",)


class TransitionOutcome(BaseModel):
    """Result of one record type change"""
    policy: TransitionPolicy
    record_type: str
    descriptors: List[FieldDescriptor] = Field(default_factory=list)
    buffer: Dict[str, Any] = Field(default_factory=dict)
    custom_fields: List[CustomField] = Field(default_factory=list)
    references_to_refresh: List[str] = Field(default_factory=list)


def is_empty_value(value: Any) -> bool:
    return value is None or value is False or value == "" or value == [] or value == {}


def choose_policy(
    new_record_type: str,
    original_record_type: Optional[str],
    action: Optional[VaultAction]
) -> TransitionPolicy:
    """
    Pick how the buffer is rebuilt

    Returning to the originally loaded type always wins; otherwise an update
    starts blank and a create carries values forward.
    """
    if original_record_type and new_record_type == original_record_type:
        return TransitionPolicy.RETURN_TO_ORIGINAL
    if action == VaultAction.RECORD_UPDATE:
        return TransitionPolicy.UPDATE_BLANK
    return TransitionPolicy.CREATE_CARRY_FORWARD


def return_to_original(original_buffer: Mapping[str, Any]) -> Dict[str, Any]:
    """Exact copy of the buffer captured at initial load"""
    return copy.deepcopy(dict(original_buffer))


def update_blank(old_buffer: Mapping[str, Any], new_record_type: str) -> Dict[str, Any]:
    """Minimal buffer for an update: entity identifier and new type only"""
    buffer: Dict[str, Any] = {RECORD_TYPE_KEY: new_record_type}
    if old_buffer.get(RECORD_KEY):
        buffer[RECORD_KEY] = old_buffer[RECORD_KEY]
    return buffer


def blank_update_buffer(
    record_uid: str,
    record_type: Optional[str],
    descriptors: Sequence[FieldDescriptor],
    custom_fields: Sequence[CustomField] = ()
) -> Dict[str, Any]:
    """Buffer for a freshly loaded update: identifiers set, every input empty"""
    buffer: Dict[str, Any] = {RECORD_KEY: record_uid}
    if record_type:
        buffer[RECORD_TYPE_KEY] = record_type
    for name in [descriptor.name for descriptor in descriptors] + [field.id for field in custom_fields]:
        buffer.setdefault(name, "")
    return buffer


def carry_forward(
    old_buffer: Mapping[str, Any],
    old_descriptors: Sequence[FieldDescriptor],
    new_descriptors: Sequence[FieldDescriptor],
    new_record_type: str
) -> MappingResult:
    """
    Carry non-empty values into a new descriptor set

    Each value goes to the descriptor with the same name, else to a free
    descriptor whose name contains it or ends with _<key>, else it becomes a
    custom field. Core keys are kept verbatim.
    """
    buffer: Dict[str, Any] = {descriptor.name: "" for descriptor in new_descriptors}
    for key in CORE_KEYS:
        if key in old_buffer:
            buffer[key] = old_buffer[key]
    buffer[RECORD_TYPE_KEY] = new_record_type

    old_labels = {descriptor.name: descriptor.label for descriptor in old_descriptors}
    new_names = [descriptor.name for descriptor in new_descriptors]
    filled: set = set()
    pending: List[tuple] = []

    for key, value in old_buffer.items():
        if key in CORE_KEYS or key.startswith(INTERNAL_KEY_PREFIXES) or is_empty_value(value):
            continue
        if key in new_names:
            buffer[key] = value
            filled.add(key)
        else:
            pending.append((key, value))

    customs = CustomFieldCollector(reserved=set(buffer))
    for key, value in pending:
        target = _partial_match(key, new_names, filled)
        if target is not None:
            buffer[target] = value
            filled.add(target)
            continue
        label = old_labels.get(key) or clean_field_name(key)
        customs.add(field_id=key, label=label, value=value, original_field_name=key)

    return MappingResult(buffer=buffer, custom_fields=customs.fields)


def _partial_match(key: str, names: Sequence[str], filled: set) -> Optional[str]:
    for name in names:
        if name in filled or name == TITLE_KEY:
            continue
        if key in name or name.endswith(f"_{key}"):
            return name
    return None


def collect_reference_uids(
    buffer: Mapping[str, Any],
    descriptors: Sequence[FieldDescriptor],
    custom_fields: Sequence[CustomField] = ()
) -> List[str]:
    """Address reference UIDs held anywhere in a buffer"""
    keys = {ADDRESS_REF_KEY}
    keys.update(
        descriptor.name for descriptor in descriptors
        if descriptor.input_kind == InputKind.REFERENCE and descriptor.source_type == ADDRESS_REF_KEY
    )
    keys.update(
        custom_field.id for custom_field in custom_fields
        if custom_field.input_kind == InputKind.REFERENCE
    )
    uids: List[str] = []
    for key in sorted(keys):
        value = buffer.get(key)
        if isinstance(value, str) and value and value not in uids:
            uids.append(value)
    return uids


class RecordTypeTransitionController:
    """
    Rebuild the edit buffer for a new record type

    Descriptors for the new type are compiled by the caller; this class
    only picks the policy and produces the new buffer.
    """

    def transition(
        self,
        new_record_type: str,
        new_descriptors: Sequence[FieldDescriptor],
        old_buffer: Mapping[str, Any],
        old_descriptors: Sequence[FieldDescriptor],
        original_record_type: Optional[str],
        original_buffer: Optional[Mapping[str, Any]],
        original_custom_fields: Sequence[CustomField] = (),
        action: Optional[VaultAction] = None
    ) -> TransitionOutcome:
        """
        Compute the buffer for a record type change

        Args:
            new_record_type: Record type the user selected
            new_descriptors: Compiled descriptors for that type
            old_buffer: Current edit buffer, custom field values included
            old_descriptors: Descriptors the current buffer was built for
            original_record_type: Type the entity was first loaded with
            original_buffer: Buffer captured right after that load
            original_custom_fields: Custom fields captured with it
            action: Selected vault action

        Returns:
            TransitionOutcome whose buffer includes custom field values
        """
        policy = choose_policy(new_record_type, original_record_type, action)
        if policy == TransitionPolicy.RETURN_TO_ORIGINAL and original_buffer is None:
            policy = choose_policy(new_record_type, None, action)

        custom_fields: List[CustomField] = []
        if policy == TransitionPolicy.RETURN_TO_ORIGINAL:
            buffer = return_to_original(original_buffer)
            custom_fields = [custom_field.model_copy() for custom_field in original_custom_fields]
        elif policy == TransitionPolicy.UPDATE_BLANK:
            buffer = update_blank(old_buffer, new_record_type)
        else:
            result = carry_forward(old_buffer, old_descriptors, new_descriptors, new_record_type)
            buffer = result.as_edit_buffer()
            custom_fields = result.custom_fields

        logger.info(
            f"Record type changed to {new_record_type}",
            extra={"record_type": new_record_type, "policy": policy.value}
        )
        return TransitionOutcome(
            policy=policy,
            record_type=new_record_type,
            descriptors=list(new_descriptors),
            buffer=buffer,
            custom_fields=custom_fields,
            references_to_refresh=collect_reference_uids(buffer, new_descriptors, custom_fields),
        )
