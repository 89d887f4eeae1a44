"""Payload Builder - Turns an edit buffer into the payload sent on execute"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..domain.actions import get_action
from ..domain.enums import CompositeKind, VaultAction
from ..domain.models import (
    CustomField, FieldDescriptor, PendingAddressData, SelectedEntities,
    NOTES_KEY, RECORD_KEY, RECORD_TYPE_KEY, TITLE_KEY
)
from .validators import has_value, is_field_applicable
from .value_extractor import is_masked_marker, recompose_entries


def clean_buffer(action: VaultAction, buffer: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Drop everything that must not reach the vault

    Removes _-prefixed bookkeeping keys, empty values, the masked secret
    marker and conditional fields whose condition is not met.
    """
    cleaned: Dict[str, Any] = {}
    for key, value in buffer.items():
        if key.startswith("_") or not has_value(value) or is_masked_marker(value):
            continue
        if not is_field_applicable(action, key, buffer):
            continue
        cleaned[key] = value
    return cleaned


def changed_values(
    cleaned: Mapping[str, Any],
    current_values: Mapping[str, Any],
    descriptors: Sequence[FieldDescriptor] = ()
) -> Dict[str, Any]:
    """
    Keep only values that differ from the record being updated

    The record UID and type always stay. When one sub-field of a composite
    changed, its untouched sub-fields are filled from current_values so the
    recomposed value does not lose them.
    """
    changed = {
        key: value for key, value in cleaned.items()
        if key in (RECORD_KEY, RECORD_TYPE_KEY) or value != current_values.get(key)
    }

    groups: Dict[CompositeKind, List[FieldDescriptor]] = {}
    for descriptor in descriptors:
        if descriptor.parent_type is not None and descriptor.sub_field:
            groups.setdefault(descriptor.parent_type, []).append(descriptor)

    for members in groups.values():
        if not any(member.name in changed for member in members):
            continue
        for member in members:
            current = current_values.get(member.name)
            if member.name not in changed and has_value(current) and not is_masked_marker(current):
                changed[member.name] = current
    return changed


def build_execution_payload(
    action: VaultAction,
    buffer: Mapping[str, Any],
    descriptors: Sequence[FieldDescriptor] = (),
    custom_fields: Sequence[CustomField] = (),
    selected_entities: Optional[SelectedEntities] = None,
    current_values: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build the execute payload for an action

    Record actions send typed field entries with composite sub-fields
    recomposed; sharing and permission actions send their flat inputs
    plus the selected record/folder UIDs. A record update given the
    record's current_values only sends what differs from them.
    """
    cleaned = clean_buffer(action, buffer)
    if action == VaultAction.RECORD_UPDATE and current_values:
        cleaned = changed_values(cleaned, current_values, descriptors)
    selected_entities = selected_entities or SelectedEntities()

    if action in (VaultAction.RECORD_ADD, VaultAction.RECORD_UPDATE):
        return _record_payload(action, cleaned, descriptors, custom_fields, selected_entities)

    payload = {
        key: value for key, value in cleaned.items()
        if key in get_action(action).field_names()
    }
    if selected_entities.record is not None:
        payload["record"] = selected_entities.record.uid
    if selected_entities.folder is not None:
        folder_key = "folder" if action == VaultAction.SHARE_FOLDER else "sharedFolder"
        payload[folder_key] = selected_entities.folder.uid
    return payload


def _record_payload(
    action: VaultAction,
    cleaned: Dict[str, Any],
    descriptors: Sequence[FieldDescriptor],
    custom_fields: Sequence[CustomField],
    selected_entities: SelectedEntities
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for key in (RECORD_TYPE_KEY, TITLE_KEY, NOTES_KEY):
        if key in cleaned:
            payload[key] = cleaned[key]

    if action == VaultAction.RECORD_UPDATE:
        if selected_entities.record_for_update is not None:
            payload[RECORD_KEY] = selected_entities.record_for_update.uid
        elif RECORD_KEY in cleaned:
            payload[RECORD_KEY] = cleaned[RECORD_KEY]
        if cleaned.get("force"):
            payload["force"] = True

    fields = recompose_entries(cleaned, descriptors)
    if fields:
        payload["fields"] = [entry.model_dump(exclude_none=True) for entry in fields]

    custom: List[Dict[str, Any]] = []
    for custom_field in custom_fields:
        value = cleaned.get(custom_field.id)
        if value is None:
            continue
        custom.append({"type": "text", "label": custom_field.clean_label, "value": [value]})
    if custom:
        payload["custom"] = custom

    descriptor_names = {descriptor.name for descriptor in descriptors}
    custom_ids = {custom_field.id for custom_field in custom_fields}
    action_names = set(get_action(action).field_names())
    for key, value in cleaned.items():
        if key in payload or key in descriptor_names or key in custom_ids or key == "force":
            continue
        if key in action_names:
            payload[key] = value
    return payload


def build_address_payload(data: PendingAddressData) -> Dict[str, Any]:
    """record-add payload that creates a pending address"""
    parts = {key: value for key, value in data.address_parts().items() if value}
    payload: Dict[str, Any] = {
        RECORD_TYPE_KEY: "address",
        TITLE_KEY: data.title,
        "fields": [{"type": "address", "value": [parts]}],
    }
    if data.notes:
        payload[NOTES_KEY] = data.notes
    return payload
