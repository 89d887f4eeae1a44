"""Request Validators - Action-specific checks run before save and execute"""
import re
from typing import Any, List, Mapping, Optional, Sequence

from ..config.settings import settings
from ..domain.actions import get_action
from ..domain.enums import InputKind, VaultAction
from ..domain.models import FieldDescriptor, FieldError, SelectedEntities, RECORD_TYPE_KEY
from ..utils.time import parse_iso
from .value_extractor import is_masked_marker

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
SYMBOL_PATTERN = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?~`]")
GENERATED_PASSWORD_PREFIX = "$GEN"

# Fields that count as an update besides the template fields
STANDARD_UPDATE_FIELDS = ("title", "login", "password", "url", "email", "notes", RECORD_TYPE_KEY)


def has_value(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def is_changed(buffer: Mapping[str, Any], current_values: Mapping[str, Any], name: str) -> bool:
    """True when a buffer value is filled in and differs from the stored one"""
    value = buffer.get(name)
    if not has_value(value) or is_masked_marker(value):
        return False
    return value != current_values.get(name)


def validate_emails(raw: Optional[str]) -> List[str]:
    """
    Check a comma-separated list of email addresses

    Returns:
        The invalid addresses; empty when all are valid
    """
    if not raw or not raw.strip():
        return [""]
    addresses = [address.strip() for address in raw.split(",")]
    return [address for address in addresses if not EMAIL_PATTERN.match(address)]


def validate_password(password: Any) -> List[str]:
    """Strength problems for a password; generated and masked values pass"""
    if not isinstance(password, str) or not password:
        return []
    if password.startswith(GENERATED_PASSWORD_PREFIX) or is_masked_marker(password):
        return []

    errors = []
    if len(password) < settings.password_min_length:
        errors.append(f"Password must be at least {settings.password_min_length} characters long")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not SYMBOL_PATTERN.search(password):
        errors.append("Password must contain at least one symbol")
    return errors


def is_datetime(raw: str) -> bool:
    try:
        parse_iso(raw.strip())
    except (ValueError, OverflowError):
        return False
    return True


def is_field_applicable(action: VaultAction, name: str, buffer: Mapping[str, Any]) -> bool:
    """False for conditional fields whose controlling value is not selected"""
    action_field = get_action(action).get_field(name)
    if action_field is None or not action_field.conditional_on:
        return True
    return buffer.get(action_field.conditional_on) == action_field.conditional_value


class RequestValidator:
    """
    Validate an edit buffer for the selected action

    Every check adds a FieldError rather than stopping at the first one, so
    all problems can be shown at once.
    """

    def validate(
        self,
        action: Optional[VaultAction],
        buffer: Mapping[str, Any],
        selected_entities: SelectedEntities,
        descriptors: Sequence[FieldDescriptor] = (),
        current_values: Optional[Mapping[str, Any]] = None
    ) -> List[FieldError]:
        """
        current_values holds what the record being updated already stores;
        an update field only counts as a change when it differs from it.
        """
        if action is None:
            return [FieldError(field="action", message="Select an action")]

        handlers = {
            VaultAction.RECORD_ADD: self._validate_record_add,
            VaultAction.RECORD_PERMISSION: self._validate_record_permission,
            VaultAction.SHARE_RECORD: self._validate_share_record,
            VaultAction.SHARE_FOLDER: self._validate_share_folder,
        }
        if action == VaultAction.RECORD_UPDATE:
            errors = self._validate_record_update(buffer, selected_entities, descriptors, current_values or {})
        else:
            errors = handlers[action](buffer, selected_entities, descriptors)
        errors.extend(self._validate_conditional(action, buffer))
        return errors

    # =========================================================================
    # Per-action rules
    # =========================================================================

    def _validate_record_add(self, buffer, selected_entities, descriptors) -> List[FieldError]:
        errors = []
        if not has_value(buffer.get(RECORD_TYPE_KEY)):
            errors.append(FieldError(field=RECORD_TYPE_KEY, message="Record type is required"))
        for descriptor in descriptors:
            if descriptor.required and not has_value(buffer.get(descriptor.name)):
                errors.append(FieldError(field=descriptor.name, message=f"{descriptor.label} is required"))
        errors.extend(self._validate_passwords(buffer, descriptors))
        return errors

    def _validate_record_update(self, buffer, selected_entities, descriptors, current_values) -> List[FieldError]:
        if selected_entities.record_for_update is None:
            return [FieldError(field="record", message="Select a record to update")]

        names = list(STANDARD_UPDATE_FIELDS) + [descriptor.name for descriptor in descriptors]
        if not any(is_changed(buffer, current_values, name) for name in names):
            return [FieldError(field="record", message="Enter at least one field to update")]
        return self._validate_passwords(buffer, descriptors)

    def _validate_record_permission(self, buffer, selected_entities, descriptors) -> List[FieldError]:
        errors = []
        if selected_entities.folder is None:
            errors.append(FieldError(field="sharedFolder", message="Select a shared folder"))
        if not has_value(buffer.get("action")):
            errors.append(FieldError(field="action", message="Select an action"))
        elif buffer.get("action") == "revoke" and not (buffer.get("can_share") or buffer.get("can_edit")):
            errors.append(FieldError(
                field="action",
                message="Revoke requires Can Share Records or Can Edit Records"
            ))
        return errors

    def _validate_share_record(self, buffer, selected_entities, descriptors) -> List[FieldError]:
        errors = []
        if not has_value(buffer.get("action")):
            errors.append(FieldError(field="action", message="Select an action"))
        errors.extend(self._validate_user(buffer))
        if selected_entities.record is None and selected_entities.folder is None:
            errors.append(FieldError(field="record", message="Select a record or folder to share"))
        return errors

    def _validate_share_folder(self, buffer, selected_entities, descriptors) -> List[FieldError]:
        errors = []
        if selected_entities.folder is None:
            errors.append(FieldError(field="folder", message="Select a shared folder"))
        if not has_value(buffer.get("action")):
            errors.append(FieldError(field="action", message="Select an action"))
        errors.extend(self._validate_user(buffer))
        return errors

    # =========================================================================
    # Shared rules
    # =========================================================================

    def _validate_user(self, buffer: Mapping[str, Any]) -> List[FieldError]:
        user = buffer.get("user")
        if not has_value(user):
            return [FieldError(field="user", message="Email is required")]
        invalid = validate_emails(str(user))
        if invalid:
            return [FieldError(field="user", message=f"Invalid email address: {', '.join(invalid)}")]
        return []

    def _validate_passwords(self, buffer, descriptors) -> List[FieldError]:
        names = {"password"}
        names.update(
            descriptor.name for descriptor in descriptors
            if descriptor.input_kind == InputKind.MASKED and descriptor.source_type == "password"
        )
        errors = []
        for name in sorted(names):
            for message in validate_password(buffer.get(name)):
                errors.append(FieldError(field=name, message=message))
        return errors

    def _validate_conditional(self, action: VaultAction, buffer: Mapping[str, Any]) -> List[FieldError]:
        errors = []
        for action_field in get_action(action).fields:
            if not action_field.conditional_on:
                continue
            if not is_field_applicable(action, action_field.name, buffer):
                continue
            value = buffer.get(action_field.name)
            if not has_value(value):
                errors.append(FieldError(field=action_field.name, message=f"{action_field.label} is required"))
            elif action_field.input_kind == InputKind.DATETIME and not is_datetime(str(value)):
                errors.append(FieldError(
                    field=action_field.name,
                    message=f"{action_field.label} must be a date and time like 2030-01-31 17:00:00"
                ))
        return errors


def validate_request(
    action: Optional[VaultAction],
    buffer: Mapping[str, Any],
    selected_entities: SelectedEntities,
    descriptors: Sequence[FieldDescriptor] = (),
    current_values: Optional[Mapping[str, Any]] = None
) -> List[FieldError]:
    """Validate with a shared validator instance"""
    return _validator.validate(action, buffer, selected_entities, descriptors, current_values)


_validator = RequestValidator()
