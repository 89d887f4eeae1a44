"""Value Extractor - Display strings for stored values and recomposition of edits"""
import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config.settings import settings
from ..domain.enums import CompositeKind, InputKind
from ..domain.models import FieldDescriptor, StoredFieldEntry, NOTES_KEY, TITLE_KEY
from .composites import COMPOSITE_SHAPES, as_text, composite_kind_for
from .template_compiler import SCALAR_INPUT_KINDS


def is_masked_type(field_type: str) -> bool:
    """Stored field types whose value is never shown in clear"""
    return SCALAR_INPUT_KINDS.get(field_type) == InputKind.MASKED


def is_masked_marker(value: Any) -> bool:
    return value == settings.masked_secret_marker


def primitive_text(value: Any) -> Optional[str]:
    """Text for a primitive value, None for structured ones"""
    if value is None or isinstance(value, (dict, list)):
        return None
    return as_text(value)


def structured_text(value: Any) -> str:
    """
    Readable text for a structured value no composite rule covers

    Examples:
        >>> structured_text({"question": "q", "answer": "a"})
        'question: q, answer: a'
        >>> structured_text([[1, 2]])
        '[[1, 2]]'
    """
    if isinstance(value, dict):
        parts = [f"{key}: {primitive_text(item)}" for key, item in value.items() if primitive_text(item)]
    elif isinstance(value, list):
        parts = [primitive_text(item) for item in value if primitive_text(item)]
    else:
        parts = []
    if parts:
        return ", ".join(parts)
    return json.dumps(value, default=str)


def extract_display_value(entry: StoredFieldEntry) -> Optional[str]:
    """
    Display string for one stored entry

    Composite values use their kind's display rule, password-like values
    show the masked marker, everything else is shown as text.

    Returns:
        Display string, or None when the value has no usable form
    """
    raw = entry.first_value
    if raw is None:
        return None

    kind = composite_kind_for(entry.type)
    if kind is not None and isinstance(raw, dict):
        display = COMPOSITE_SHAPES[kind].display_value(raw)
        if display is not None:
            return display

    if is_masked_type(entry.type):
        text = primitive_text(raw)
        return settings.masked_secret_marker if text else text

    return primitive_text(raw)


def recompose_entries(
    buffer: Mapping[str, Any],
    descriptors: Sequence[FieldDescriptor]
) -> List[StoredFieldEntry]:
    """
    Rebuild typed entries from a flat edit buffer

    Composite sub-fields are gathered back into one structured value per
    kind; scalar descriptors yield one entry each. Title and notes stay at
    the top level and are not returned. Empty values are skipped.
    """
    ordered: List[Any] = []
    composite_parts: Dict[CompositeKind, Dict[str, Any]] = {}

    for descriptor in descriptors:
        if descriptor.name in (TITLE_KEY, NOTES_KEY):
            continue
        value = buffer.get(descriptor.name)
        if descriptor.parent_type is not None and descriptor.sub_field:
            kind = CompositeKind(descriptor.parent_type)
            if kind not in composite_parts:
                composite_parts[kind] = {}
                ordered.append(kind)
            if value not in (None, ""):
                composite_parts[kind][descriptor.sub_field] = value
            continue
        if value in (None, "") or not descriptor.source_type:
            continue
        ordered.append(StoredFieldEntry(
            type=descriptor.source_type,
            label=descriptor.source_label,
            value=[value],
        ))

    entries: List[StoredFieldEntry] = []
    for item in ordered:
        if isinstance(item, StoredFieldEntry):
            entries.append(item)
            continue
        value = COMPOSITE_SHAPES[item].recompose(composite_parts[item])
        if value is not None:
            entries.append(StoredFieldEntry(type=item.value, value=[value]))

    return entries
