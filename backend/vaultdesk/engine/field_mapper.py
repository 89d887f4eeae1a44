"""Field Mapper - Maps stored values onto compiled descriptors"""
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..config.settings import settings
from ..domain.enums import CompositeKind, InputKind
from ..domain.models import (
    CustomField, FieldDescriptor, MappingResult, StoredFieldEntry, StoredSecretValue,
    NOTES_KEY, RECORD_KEY, RECORD_TYPE_KEY, TITLE_KEY
)
from ..utils.logger import get_logger
from .composites import COMPOSITE_SHAPES, composite_kind_for
from .template_compiler import clean_field_name, format_field_label
from .value_extractor import extract_display_value, is_masked_type, structured_text

logger = get_logger(__name__)


def infer_custom_input_kind(name: str) -> InputKind:
    """Editing control for a custom field, guessed from its cleaned name"""
    cleaned = clean_field_name(name).lower().replace(" ", "")
    if cleaned == "addressref":
        return InputKind.REFERENCE
    if "password" in cleaned or "pass" in cleaned:
        return InputKind.MASKED
    if "email" in cleaned:
        return InputKind.EMAIL
    if "url" in cleaned or "website" in cleaned:
        return InputKind.URL
    if "phone" in cleaned or "tel" in cleaned:
        return InputKind.PHONE
    if "date" in cleaned:
        return InputKind.DATE
    return InputKind.TEXT


class CustomFieldCollector:
    """Builds custom fields with ids that never collide with buffer keys"""

    def __init__(self, reserved: Set[str]):
        self._used = set(reserved)
        self.fields: List[CustomField] = []

    def add(self, field_id: str, label: str, value: Any, original_field_name: str) -> CustomField:
        unique_id = field_id
        index = 2
        while unique_id in self._used:
            unique_id = f"{field_id}_{index}"
            index += 1
        self._used.add(unique_id)
        custom_field = CustomField(
            id=unique_id,
            clean_label=label,
            value=value,
            original_field_name=original_field_name,
            input_kind=infer_custom_input_kind(original_field_name),
        )
        self.fields.append(custom_field)
        return custom_field

    def add_unmatched(self, entry: StoredFieldEntry, value: Any) -> CustomField:
        """Entry whose type has no descriptor in the template"""
        field_id = f"{entry.type}_{entry.label}" if entry.label else entry.type
        label = clean_field_name(entry.type)
        if entry.label:
            label = f"{label} ({entry.label})"
        return self.add(field_id, label, value, entry.type)

    def add_duplicate(self, entry: StoredFieldEntry, value: Any, occurrence: int) -> CustomField:
        """Later occurrence of a type whose descriptor slot is already taken"""
        base_label = format_field_label(entry.type)
        if entry.label:
            field_id = f"{entry.type}_{entry.label}"
            label = f"{base_label} ({entry.label})"
        else:
            field_id = f"{entry.type}_{occurrence}"
            label = f"{base_label} #{occurrence}"
        return self.add(field_id, label, value, entry.type)


class FieldMapper:
    """
    Map a stored secret onto a descriptor list

    The first occurrence of a type wins its descriptor slot; later
    occurrences, values with no descriptor and composite parts outside the
    template shape all become custom fields, so every stored entry ends up
    represented somewhere.
    """

    def map_values(
        self,
        descriptors: Sequence[FieldDescriptor],
        stored: Optional[StoredSecretValue],
        record_type: Optional[str] = None
    ) -> MappingResult:
        """
        Build an edit buffer and custom fields from stored values

        Args:
            descriptors: Compiled descriptors for the active record type
            stored: Existing secret, or None for a blank buffer
            record_type: Record type to record in the buffer

        Returns:
            MappingResult with buffer restricted to descriptor names plus
            title/notes/identifier keys
        """
        buffer: Dict[str, Any] = {descriptor.name: "" for descriptor in descriptors}
        if record_type:
            buffer[RECORD_TYPE_KEY] = record_type

        if stored is None:
            return MappingResult(buffer=buffer)

        if stored.record_uid:
            buffer[RECORD_KEY] = stored.record_uid
        if not record_type and stored.type:
            buffer[RECORD_TYPE_KEY] = stored.type
        buffer[TITLE_KEY] = stored.title or ""
        if stored.notes:
            buffer[NOTES_KEY] = stored.notes

        scalar_slots = self._scalar_slots(descriptors)
        composite_slots = self._composite_slots(descriptors)
        claimed: Set[str] = set()
        occurrences: Counter = Counter()
        customs = CustomFieldCollector(reserved=set(buffer))

        for entry in stored.all_entries():
            occurrences[entry.type] += 1
            occurrence = occurrences[entry.type]

            kind = composite_kind_for(entry.type)
            if kind is not None:
                parts = COMPOSITE_SHAPES[kind].flatten(entry.first_value)
                if parts is not None:
                    self._map_composite(kind, entry, parts, occurrence, composite_slots, claimed, buffer, customs)
                    continue
                logger.debug(f"Value of {entry.type} entry does not match its composite shape")

            self._map_scalar(entry, occurrence, scalar_slots, claimed, buffer, customs)

        return MappingResult(buffer=buffer, custom_fields=customs.fields)

    # =========================================================================
    # Per-entry mapping
    # =========================================================================

    def _map_composite(
        self,
        kind: CompositeKind,
        entry: StoredFieldEntry,
        parts: Dict[str, str],
        occurrence: int,
        composite_slots: Dict[CompositeKind, Dict[str, FieldDescriptor]],
        claimed: Set[str],
        buffer: Dict[str, Any],
        customs: CustomFieldCollector
    ) -> None:
        slots = composite_slots.get(kind)
        slot_key = f"composite:{kind.value}"

        if slots and slot_key not in claimed:
            claimed.add(slot_key)
            for sub_field, text in parts.items():
                descriptor = slots.get(sub_field)
                if descriptor is not None:
                    buffer[descriptor.name] = text
                else:
                    customs.add(
                        field_id=f"{kind.value}_{sub_field}",
                        label=format_field_label(sub_field),
                        value=text,
                        original_field_name=f"{kind.value}_{sub_field}",
                    )
            return

        display = COMPOSITE_SHAPES[kind].display(parts)
        if slots:
            customs.add_duplicate(entry, display, occurrence)
        else:
            customs.add_unmatched(entry, display)

    def _map_scalar(
        self,
        entry: StoredFieldEntry,
        occurrence: int,
        scalar_slots: Dict[Tuple[str, Optional[str]], List[FieldDescriptor]],
        claimed: Set[str],
        buffer: Dict[str, Any],
        customs: CustomFieldCollector
    ) -> None:
        text = extract_display_value(entry)
        if text is None and entry.first_value is not None:
            # No scalar form; kept as a custom field so the entry is not lost
            if is_masked_type(entry.type):
                text = settings.masked_secret_marker
            else:
                text = structured_text(entry.first_value)
            logger.debug(f"{entry.type} entry has a structured value, mapped as a custom field")
            customs.add_unmatched(entry, text)
            return
        value = text or ""

        candidates = scalar_slots.get((entry.type, entry.label)) or scalar_slots.get((entry.type, None)) or []
        for descriptor in candidates:
            if descriptor.name not in claimed:
                claimed.add(descriptor.name)
                buffer[descriptor.name] = value
                return

        if candidates:
            customs.add_duplicate(entry, value, occurrence)
        else:
            customs.add_unmatched(entry, value)

    # =========================================================================
    # Slot indexes
    # =========================================================================

    def _scalar_slots(
        self,
        descriptors: Sequence[FieldDescriptor]
    ) -> Dict[Tuple[str, Optional[str]], List[FieldDescriptor]]:
        slots: Dict[Tuple[str, Optional[str]], List[FieldDescriptor]] = {}
        for descriptor in descriptors:
            if descriptor.parent_type is not None or not descriptor.source_type:
                continue
            if descriptor.name in (TITLE_KEY, NOTES_KEY):
                continue
            slots.setdefault((descriptor.source_type, descriptor.source_label), []).append(descriptor)
        return slots

    def _composite_slots(
        self,
        descriptors: Sequence[FieldDescriptor]
    ) -> Dict[CompositeKind, Dict[str, FieldDescriptor]]:
        slots: Dict[CompositeKind, Dict[str, FieldDescriptor]] = {}
        for descriptor in descriptors:
            if descriptor.parent_type is None or not descriptor.sub_field:
                continue
            slots.setdefault(CompositeKind(descriptor.parent_type), {})[descriptor.sub_field] = descriptor
        return slots


def map_values_to_fields(
    descriptors: Sequence[FieldDescriptor],
    stored: Optional[StoredSecretValue],
    record_type: Optional[str] = None
) -> MappingResult:
    """Map values with a shared mapper instance"""
    return _mapper.map_values(descriptors, stored, record_type)


_mapper = FieldMapper()
