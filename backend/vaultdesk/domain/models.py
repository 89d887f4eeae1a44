"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .enums import (
    AddressCacheState, CompositeKind, InputKind, Role, StoredRequestStatus,
    VaultAction, WorkflowState
)


# Edit buffer keys shared by every action
RECORD_KEY = "record"
RECORD_TYPE_KEY = "recordType"
TITLE_KEY = "title"
NOTES_KEY = "notes"
ADDRESS_REF_KEY = "addressRef"
CORE_KEYS = (RECORD_KEY, RECORD_TYPE_KEY, TITLE_KEY)


# ============================================================================
# Record Type Schema
# ============================================================================

class SchemaFieldEntry(BaseModel):
    """One field entry of a record type schema"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    field_type: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("field_type", "type", "$ref"),
        description="Explicit type tag (e.g. login, phone, addressRef)"
    )
    label: Optional[str] = Field(None, description="Optional label distinguishing same-typed entries")
    required: bool = Field(default=False)
    value: Optional[Any] = Field(None, description="Sample value used as a shape hint")

    @property
    def sample_shape(self) -> Optional[Any]:
        """First sample value, unwrapped from a list if needed"""
        if isinstance(self.value, list):
            return self.value[0] if self.value else None
        return self.value


class RecordSchema(BaseModel):
    """Declarative schema for one record type"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    record_type: str = Field(..., validation_alias=AliasChoices("record_type", "$id", "id"))
    label: Optional[str] = None
    description: Optional[str] = None
    top_level_fields: List[str] = Field(default_factory=lambda: ["title", "notes"])
    fields: List[SchemaFieldEntry] = Field(default_factory=list)


class FieldDescriptor(BaseModel):
    """A single editable input compiled from a schema"""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Flat edit buffer key")
    label: str = Field(..., description="Display label")
    input_kind: InputKind = Field(default=InputKind.TEXT)
    required: bool = Field(default=False)
    parent_type: Optional[CompositeKind] = Field(None, description="Composite kind for sub-fields")
    sub_field: Optional[str] = Field(None, description="Sub-field key inside the composite value")
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    source_type: Optional[str] = Field(None, description="Stored field type this descriptor reads")
    source_label: Optional[str] = Field(None, description="Stored field label this descriptor reads")


# ============================================================================
# Stored Secret Values
# ============================================================================

class StoredFieldEntry(BaseModel):
    """One typed entry of a stored secret"""
    model_config = ConfigDict(extra="ignore")

    type: str
    label: Optional[str] = None
    value: List[Any] = Field(default_factory=list)

    @field_validator("value", mode="before")
    @classmethod
    def _wrap_value(cls, value: Any) -> List[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            return [value]
        return value

    @property
    def first_value(self) -> Optional[Any]:
        return self.value[0] if self.value else None


class StoredSecretValue(BaseModel):
    """Backend representation of an existing secret"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    record_uid: Optional[str] = Field(None, validation_alias=AliasChoices("record_uid", "uid"))
    title: str = ""
    type: str = Field("", validation_alias=AliasChoices("type", "record_type"))
    fields: List[StoredFieldEntry] = Field(default_factory=list)
    custom: List[StoredFieldEntry] = Field(default_factory=list)
    notes: Optional[str] = None

    def all_entries(self) -> List[StoredFieldEntry]:
        """Standard entries followed by custom ones, in stored order"""
        return list(self.fields) + list(self.custom)


class CustomField(BaseModel):
    """Editable field for a value without a descriptor in the active template"""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Edit buffer key")
    clean_label: str
    value: Any = None
    original_field_name: str
    input_kind: InputKind = Field(default=InputKind.TEXT)


class MappingResult(BaseModel):
    """Output of mapping values onto descriptors"""
    buffer: Dict[str, Any] = Field(default_factory=dict)
    custom_fields: List[CustomField] = Field(default_factory=list)

    def as_edit_buffer(self) -> Dict[str, Any]:
        """Buffer including custom field values under their ids"""
        merged = dict(self.buffer)
        for custom_field in self.custom_fields:
            merged[custom_field.id] = custom_field.value
        return merged


# ============================================================================
# Address References
# ============================================================================

class PendingAddressData(BaseModel):
    """Address entered inline that is created only when the request executes"""
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    street1: str = ""
    street2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    notes: str = ""

    def address_parts(self) -> Dict[str, str]:
        return {
            "street1": self.street1,
            "street2": self.street2,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country,
        }

    def to_secret_value(self, uid: str) -> StoredSecretValue:
        """Shape the pending data like a resolved address record"""
        return StoredSecretValue(
            record_uid=uid,
            title=self.title,
            type="address",
            fields=[StoredFieldEntry(type="address", value=[self.address_parts()])],
            notes=self.notes or None,
        )


class AddressCacheEntry(BaseModel):
    """Cached outcome of resolving one address reference"""
    uid: str
    state: AddressCacheState
    data: Optional[StoredSecretValue] = None
    message: Optional[str] = None
    pending: bool = Field(default=False, description="Placeholder for an address not created yet")

# ============================================================================
# Stored Request (draft shared by requester and administrator)
# ============================================================================

class SelectedEntity(BaseModel):
    """A vault record or folder picked in the form"""
    model_config = ConfigDict(extra="ignore")

    uid: str
    title: Optional[str] = None
    path: Optional[str] = None


class SelectedEntities(BaseModel):
    """Entities chosen for the selected action"""
    model_config = ConfigDict(extra="ignore")

    record: Optional[SelectedEntity] = Field(None, description="Record to share")
    record_for_update: Optional[SelectedEntity] = Field(None, description="Record to update")
    folder: Optional[SelectedEntity] = Field(None, description="Folder to share or re-permission")


class StoredRequest(BaseModel):
    """Persisted draft of one ticket's pending action"""
    model_config = ConfigDict(extra="ignore")

    ticket_id: Optional[str] = Field(None, description="Ticket the draft belongs to")
    selected_action: VaultAction
    edit_buffer: Dict[str, Any] = Field(default_factory=dict)
    selected_entities: SelectedEntities = Field(default_factory=SelectedEntities)
    temp_address_data: Dict[str, PendingAddressData] = Field(default_factory=dict)
    timestamp: datetime
    submitted_by: Optional[str] = None
    status: StoredRequestStatus = Field(default=StoredRequestStatus.PENDING)


# ============================================================================
# Collaborator Results
# ============================================================================

class RoleInfo(BaseModel):
    """Result of the per-ticket role lookup"""
    is_administrator: bool = False
    display_name: Optional[str] = None

    @property
    def role(self) -> Role:
        return Role.ADMINISTRATOR if self.is_administrator else Role.REQUESTER


class SaveResult(BaseModel):
    success: bool
    assigned_reviewer: Optional[str] = None
    message: Optional[str] = None


class ClearResult(BaseModel):
    success: bool
    message: Optional[str] = None


class ExecuteResult(BaseModel):
    success: bool
    message: str = ""
    created_entity_id: Optional[str] = None


class RejectResult(BaseModel):
    success: bool
    message: Optional[str] = None


# ============================================================================
# Session State & Operation Results
# ============================================================================

class FieldError(BaseModel):
    """Validation failure for one field"""
    field: str
    message: str


class OperationResult(BaseModel):
    """Non-throwing outcome of a session operation"""
    success: bool
    message: Optional[str] = None
    field_errors: List[FieldError] = Field(default_factory=list)
    state: Optional[WorkflowState] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class EditSessionState(BaseModel):
    """Everything the active edit session owns for one ticket"""
    ticket_id: str
    role: Role = Role.REQUESTER
    workflow_state: WorkflowState = WorkflowState.EDITING_REQUESTER
    selected_action: Optional[VaultAction] = None
    record_type: Optional[str] = None
    original_record_type: Optional[str] = None
    descriptors: List[FieldDescriptor] = Field(default_factory=list)
    edit_buffer: Dict[str, Any] = Field(default_factory=dict)
    original_buffer: Dict[str, Any] = Field(default_factory=dict)
    custom_fields: List[CustomField] = Field(default_factory=list)
    current_values: Dict[str, Any] = Field(default_factory=dict)
    selected_entities: SelectedEntities = Field(default_factory=SelectedEntities)
    template_message: Optional[str] = None
    has_stored_request: bool = False
