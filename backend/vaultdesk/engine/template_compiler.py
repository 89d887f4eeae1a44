"""Template Compiler - Flattens a record type schema into editable field descriptors"""
import re
from typing import Dict, List, Optional, Set

from ..domain.enums import CompositeKind, InputKind, ReferenceKind
from ..domain.models import FieldDescriptor, RecordSchema, SchemaFieldEntry, NOTES_KEY, TITLE_KEY
from ..utils.logger import get_logger
from .composites import COMPOSITE_SHAPES, composite_kind_for, infer_kind_from_sample

logger = get_logger(__name__)


NO_FIELDS_MESSAGE = "No template fields available for this record type, standard fields only"

# Scalar field type -> editing control
SCALAR_INPUT_KINDS: Dict[str, InputKind] = {
    "password": InputKind.MASKED,
    "secret": InputKind.MASKED,
    "pinCode": InputKind.MASKED,
    "passphrase": InputKind.MASKED,
    "url": InputKind.URL,
    "email": InputKind.EMAIL,
    "phone": InputKind.PHONE,
    "date": InputKind.DATE,
    "birthDate": InputKind.DATE,
    "expirationDate": InputKind.DATE,
    "checkbox": InputKind.CHECKBOX,
}

SCALAR_LABELS: Dict[str, str] = {
    "login": "Login",
    "password": "Password",
    "url": "URL",
    "email": "Email",
    "oneTimeCode": "One-Time Code",
    "licenseNumber": "License Key",
    "accountNumber": "Account Number",
    "note": "Secured Note",
    "addressRef": "Address",
    "fileRef": "File Attachment",
    "cardRef": "Payment Card",
}

REFERENCE_TYPES = {kind.value for kind in ReferenceKind}


def format_field_label(label: str) -> str:
    """
    Human label for a field key

    Examples:
        >>> format_field_label("cardExpirationDate")
        'Card Expiration Date'
        >>> format_field_label("security_question")
        'Security question'
    """
    if not label:
        return ""
    text = label[0].upper() + re.sub(r"([A-Z])", r" \1", label[1:])
    text = text.replace("_", " ")
    return re.sub(r"\s+", " ", text).strip()


def clean_field_name(name: str) -> str:
    """Strip parentType_ prefixes and title-case the remainder"""
    last_part = name.split("_")[-1] if name else ""
    return format_field_label(last_part)


def scalar_input_kind(field_type: str) -> InputKind:
    if field_type in REFERENCE_TYPES:
        return InputKind.REFERENCE
    return SCALAR_INPUT_KINDS.get(field_type, InputKind.TEXT)


def scalar_label(field_type: str, label: Optional[str] = None) -> str:
    if label:
        return format_field_label(label)
    return SCALAR_LABELS.get(field_type) or format_field_label(field_type)


class TemplateCompiler:
    """
    Turn a record type schema into an ordered list of field descriptors

    Composite entries decompose into parentType_subField descriptors, scalar
    and reference entries yield one descriptor each. Names are unique within
    one compiled list.
    """

    def compile(self, record_type: str, schema: Optional[RecordSchema]) -> List[FieldDescriptor]:
        """
        Compile descriptors for a record type

        Args:
            record_type: Record type identifier
            schema: Schema from the template source, or None if absent

        Returns:
            Ordered descriptors; empty when the schema has no usable entries
        """
        if schema is None:
            logger.info(
                f"No schema for record type {record_type}",
                extra={"record_type": record_type}
            )
            return []

        usable = [entry for entry in schema.fields if self._entry_type(entry)]
        if not usable:
            logger.info(
                f"Schema for {record_type} has no usable field entries",
                extra={"record_type": record_type}
            )
            return []

        descriptors: List[FieldDescriptor] = []
        names: Set[str] = set()

        if TITLE_KEY in schema.top_level_fields:
            self._add(descriptors, names, FieldDescriptor(
                name=TITLE_KEY, label="Title", required=True, source_type=TITLE_KEY
            ))
        if NOTES_KEY in schema.top_level_fields:
            self._add(descriptors, names, FieldDescriptor(
                name=NOTES_KEY, label="Notes", source_type=NOTES_KEY
            ))

        emitted_kinds: Set[CompositeKind] = set()
        for entry in usable:
            field_type = self._entry_type(entry)
            kind = self._composite_kind(entry, field_type)
            if kind is not None:
                if kind in emitted_kinds:
                    logger.debug(
                        f"Skipping repeated {kind.value} entry in {record_type} schema",
                        extra={"record_type": record_type}
                    )
                    continue
                emitted_kinds.add(kind)
                for descriptor in self._composite_descriptors(kind, entry):
                    self._add(descriptors, names, descriptor)
                continue

            name = self._unique_name(self._scalar_name(field_type, entry.label), names)
            self._add(descriptors, names, FieldDescriptor(
                name=name,
                label=scalar_label(field_type, entry.label),
                input_kind=scalar_input_kind(field_type),
                required=entry.required,
                source_type=field_type,
                source_label=entry.label,
            ))

        logger.debug(
            f"Compiled {len(descriptors)} descriptors for {record_type}",
            extra={"record_type": record_type}
        )
        return descriptors

    # =========================================================================
    # Helpers
    # =========================================================================

    def _entry_type(self, entry: SchemaFieldEntry) -> Optional[str]:
        if entry.field_type:
            return entry.field_type
        kind = infer_kind_from_sample(entry.sample_shape)
        return kind.value if kind else None

    def _composite_kind(self, entry: SchemaFieldEntry, field_type: str) -> Optional[CompositeKind]:
        kind = composite_kind_for(field_type)
        if kind is None:
            return None
        sample = entry.sample_shape
        # A primitive sample means the schema treats this type as a plain value
        if sample is not None and not isinstance(sample, dict):
            return None
        return kind

    def _composite_descriptors(self, kind: CompositeKind, entry: SchemaFieldEntry) -> List[FieldDescriptor]:
        shape = COMPOSITE_SHAPES[kind]
        descriptors = []
        for sub_field in shape.shape_from_sample(entry.sample_shape):
            options = shape.options.get(sub_field)
            descriptors.append(FieldDescriptor(
                name=shape.descriptor_name(sub_field),
                label=shape.label_for(sub_field),
                input_kind=shape.input_kind_for(sub_field),
                required=entry.required and sub_field in shape.primary,
                parent_type=kind,
                sub_field=sub_field,
                options=list(options) if options else None,
                source_type=kind.value,
            ))
        return descriptors

    def _scalar_name(self, field_type: str, label: Optional[str]) -> str:
        if label:
            return f"{field_type}.{label}"
        return field_type

    def _unique_name(self, base: str, names: Set[str]) -> str:
        if base not in names:
            return base
        index = 2
        while f"{base}_{index}" in names:
            index += 1
        return f"{base}_{index}"

    def _add(self, descriptors: List[FieldDescriptor], names: Set[str], descriptor: FieldDescriptor) -> None:
        if descriptor.name in names:
            logger.debug(f"Dropping duplicate descriptor name {descriptor.name}")
            return
        names.add(descriptor.name)
        descriptors.append(descriptor)


def compile_template(record_type: str, schema: Optional[RecordSchema]) -> List[FieldDescriptor]:
    """Compile descriptors with a shared compiler instance"""
    return _compiler.compile(record_type, schema)


_compiler = TemplateCompiler()
