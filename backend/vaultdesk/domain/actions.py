"""Vault Action Catalog - Static field lists for every requestable action"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from .enums import InputKind, VaultAction


class ActionField(BaseModel):
    """Static input belonging to an action rather than a record type"""
    name: str
    label: str
    input_kind: InputKind = InputKind.TEXT
    required: bool = False
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    description: Optional[str] = None
    conditional_on: Optional[str] = Field(None, description="Field whose value enables this one")
    conditional_value: Optional[str] = None


class ActionDefinition(BaseModel):
    """One vault action with its static inputs"""
    action: VaultAction
    label: str
    description: Optional[str] = None
    requires_folder_selection: bool = False
    uses_record_templates: bool = False
    fields: List[ActionField] = Field(default_factory=list)

    def field_names(self) -> List[str]:
        return [action_field.name for action_field in self.fields]

    def get_field(self, name: str) -> Optional[ActionField]:
        for action_field in self.fields:
            if action_field.name == name:
                return action_field
        return None


_EXPIRATION_FIELDS = [
    ActionField(
        name="expiration_type", label="Expiration", input_kind=InputKind.SELECT,
        options=["none", "expire-at", "expire-in"], placeholder="Select expiration type",
        description="Set when the share access expires"
    ),
    ActionField(
        name="expire_at", label="Expire At", input_kind=InputKind.DATETIME,
        placeholder="yyyy-MM-dd hh:mm:ss", description="Specific date and time when share expires",
        conditional_on="expiration_type", conditional_value="expire-at"
    ),
    ActionField(
        name="expire_in", label="Expire In",
        placeholder="e.g., 1d, 2h, 30mi", description="Period until expiration",
        conditional_on="expiration_type", conditional_value="expire-in"
    ),
]


ACTION_CATALOG: Dict[VaultAction, ActionDefinition] = {
    VaultAction.RECORD_ADD: ActionDefinition(
        action=VaultAction.RECORD_ADD,
        label="Create New Secret",
        description="Create a new secret record in the vault.",
        uses_record_templates=True,
        fields=[
            ActionField(
                name="recordType", label="Record Type", input_kind=InputKind.SELECT,
                required=True, placeholder="Select record type"
            ),
        ],
    ),
    VaultAction.RECORD_UPDATE: ActionDefinition(
        action=VaultAction.RECORD_UPDATE,
        label="Update Record",
        description="Update existing record fields. Only fill in the fields you want to change.",
        uses_record_templates=True,
        fields=[
            ActionField(name="record", label="Record ID/Title", required=True, placeholder="Record ID or title to update"),
            ActionField(name="title", label="Title", placeholder="Title"),
            ActionField(name="recordType", label="Record Type", input_kind=InputKind.SELECT, placeholder="Record Type"),
            ActionField(name="login", label="Login", placeholder="Username"),
            ActionField(name="password", label="Password", input_kind=InputKind.MASKED, placeholder="Password"),
            ActionField(name="url", label="URL", input_kind=InputKind.URL, placeholder="URL"),
            ActionField(name="email", label="Email", input_kind=InputKind.EMAIL, placeholder="Email"),
            ActionField(name="notes", label="Notes", placeholder="Notes"),
            ActionField(
                name="force", label="Force Update", input_kind=InputKind.CHECKBOX,
                description="Ignore warnings and force the update"
            ),
        ],
    ),
    VaultAction.RECORD_PERMISSION: ActionDefinition(
        action=VaultAction.RECORD_PERMISSION,
        label="Update Record Permissions in Folder",
        requires_folder_selection=True,
        fields=[
            ActionField(
                name="sharedFolder", label="Shared Folder", input_kind=InputKind.SELECT,
                required=True, placeholder="Select shared folder"
            ),
            ActionField(
                name="action", label="Action", input_kind=InputKind.SELECT, required=True,
                options=["grant", "revoke"], placeholder="Select action"
            ),
            ActionField(name="can_share", label="Can Share Records", input_kind=InputKind.CHECKBOX),
            ActionField(name="can_edit", label="Can Edit Records", input_kind=InputKind.CHECKBOX),
            ActionField(name="recursive", label="Apply Recursively", input_kind=InputKind.CHECKBOX),
        ],
    ),
    VaultAction.SHARE_RECORD: ActionDefinition(
        action=VaultAction.SHARE_RECORD,
        label="Request Access to Record",
        requires_folder_selection=True,
        fields=[
            ActionField(
                name="user", label="Email", input_kind=InputKind.EMAIL, required=True,
                placeholder="Email of account to edit permissions for"
            ),
            ActionField(
                name="action", label="Action", input_kind=InputKind.SELECT, required=True,
                options=["grant", "revoke", "owner", "cancel"], placeholder="Select action"
            ),
            ActionField(
                name="sharedFolder", label="Record Folder", input_kind=InputKind.SELECT,
                placeholder="Select record folder (optional for cancel action)"
            ),
            ActionField(name="can_share", label="Allow Sharing", input_kind=InputKind.CHECKBOX),
            ActionField(name="can_write", label="Allow Writing", input_kind=InputKind.CHECKBOX),
            ActionField(name="recursive", label="Apply Recursively", input_kind=InputKind.CHECKBOX),
        ] + _EXPIRATION_FIELDS,
    ),
    VaultAction.SHARE_FOLDER: ActionDefinition(
        action=VaultAction.SHARE_FOLDER,
        label="Request Access to Folder",
        requires_folder_selection=True,
        fields=[
            ActionField(
                name="folder", label="Shared Folder", input_kind=InputKind.SELECT,
                required=True, placeholder="Select shared folder"
            ),
            ActionField(name="user", label="Email/Team", required=True, placeholder="Email, team name, or * for all"),
            ActionField(
                name="action", label="Action", input_kind=InputKind.SELECT, required=True,
                options=["grant", "remove"], placeholder="Select action"
            ),
            ActionField(name="manage_records", label="Can Manage Records", input_kind=InputKind.CHECKBOX),
            ActionField(name="manage_users", label="Can Manage Users", input_kind=InputKind.CHECKBOX),
            ActionField(name="can_share", label="Can Share Records", input_kind=InputKind.CHECKBOX),
            ActionField(name="can_edit", label="Can Edit Records", input_kind=InputKind.CHECKBOX),
        ] + _EXPIRATION_FIELDS,
    ),
}


def get_action(action: VaultAction) -> ActionDefinition:
    return ACTION_CATALOG[action]


def list_actions() -> List[ActionDefinition]:
    return list(ACTION_CATALOG.values())
