"""Request Session - Edit session for one ticket's vault request"""
import copy
import functools
import time
from typing import Any, Callable, Dict, List, Optional

from ..config.settings import settings
from ..domain.actions import get_action
from ..domain.enums import Role, TransitionOrigin, VaultAction, WorkflowEvent, WorkflowState
from ..domain.errors import (
    DomainError, InvalidStateError, SessionLockedError, ValidationError
)
from ..domain.models import (
    CustomField, EditSessionState, FieldDescriptor, FieldError, OperationResult,
    PendingAddressData, SelectedEntities, SelectedEntity, StoredRequest,
    ADDRESS_REF_KEY, CORE_KEYS, NOTES_KEY, RECORD_TYPE_KEY
)
from ..engine.address_cache import AddressCache
from ..engine.field_mapper import FieldMapper, infer_custom_input_kind
from ..engine.payload_builder import build_address_payload, build_execution_payload
from ..engine.record_type_transition import (
    RecordTypeTransitionController, blank_update_buffer, collect_reference_uids
)
from ..engine.restore_guard import RestoreGuard
from ..engine.template_compiler import NO_FIELDS_MESSAGE, TemplateCompiler, clean_field_name
from ..engine.validators import RequestValidator
from ..engine.workflow_machine import apply_event, initial_state
from ..utils.idgen import generate_pending_reference_uid, is_pending_reference_uid
from ..utils.logger import get_context_logger, redact_buffer
from ..utils.time import utc_now
from .vault_gateway import VaultGateway, describe_failure

EDITABLE_STATES = (
    WorkflowState.EDITING_REQUESTER,
    WorkflowState.EDITING_ADMINISTRATOR,
    WorkflowState.SAVED,
)
FINISHED_STATES = (WorkflowState.EXECUTED, WorkflowState.REJECTED, WorkflowState.CLEARED)


def session_operation(default_message: str):
    """
    Convert any failure inside a session operation into an OperationResult

    Validation errors carry their field errors through; every other error
    becomes a role-aware message. The session state is left as it was.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self: "RequestSession", *args, **kwargs) -> OperationResult:
            try:
                return await func(self, *args, **kwargs)
            except ValidationError as e:
                field_errors = [FieldError(**error) for error in e.details.get("field_errors", [])]
                return self._result(False, e.message, field_errors=field_errors)
            except DomainError as e:
                self.logger.warning(f"{func.__name__} failed: {e.message}")
                return self._result(False, describe_failure(e, self.state.role, default_message))
            except Exception as e:
                self.logger.exception(f"{func.__name__} failed: {e}")
                return self._result(False, describe_failure(e, self.state.role, default_message))
        return wrapper
    return decorator


class RequestSession:
    """
    Single active edit session for one ticket

    Owns the edit buffer, descriptors, address cache and workflow state.
    Every public operation returns an OperationResult and never raises.
    """

    def __init__(
        self,
        ticket_id: str,
        gateway: VaultGateway,
        schema_source: Optional[Any] = None,
        actor_email: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.gateway = gateway
        self.schema_source = schema_source or gateway
        self.actor_email = actor_email
        self._clock = clock
        self._locked_until = 0.0

        self.state = EditSessionState(ticket_id=ticket_id)
        self.temp_address_data: Dict[str, PendingAddressData] = {}
        self.original_custom_fields: List[CustomField] = []

        self.address_cache = AddressCache(gateway.resolve_reference)
        self.restore_guard = RestoreGuard(clock=clock)
        self.compiler = TemplateCompiler()
        self.mapper = FieldMapper()
        self.transitions = RecordTypeTransitionController()
        self.validator = RequestValidator()
        self.logger = get_context_logger(__name__, ticket_id=ticket_id)

    @property
    def ticket_id(self) -> str:
        return self.state.ticket_id

    # =========================================================================
    # Opening and restoring
    # =========================================================================

    @session_operation("Unable to load the request for this ticket")
    async def open(self) -> OperationResult:
        """
        Load role and stored request for the ticket

        The role lookup always finishes before the stored request is
        fetched; a failed lookup falls back to the requester role.
        """
        try:
            role_info = await self.gateway.fetch_role(self.ticket_id)
            role = role_info.role
        except Exception as e:
            self.logger.warning(f"Role lookup failed, continuing as requester: {e}")
            role = Role.REQUESTER

        self.state = EditSessionState(
            ticket_id=self.ticket_id,
            role=role,
            workflow_state=initial_state(role, has_stored_request=False),
        )
        self.logger.info("Opening ticket session", extra={"role": role.value})

        stored = await self.gateway.fetch_stored_request(self.ticket_id)
        if stored is not None and stored.ticket_id and stored.ticket_id != self.ticket_id:
            self.logger.warning(f"Ignoring stored request saved for ticket {stored.ticket_id}")
            stored = None

        if stored is None:
            return self._result(True)

        self.state.workflow_state = initial_state(role, has_stored_request=True)
        await self._restore(stored)
        self.state.workflow_state = apply_event(
            self.state.workflow_state, WorkflowEvent.OPEN_STORED, role, has_stored_request=True
        )
        return self._result(True, data={"restored": True})

    async def _restore(self, stored: StoredRequest) -> None:
        token = self.restore_guard.begin()
        try:
            self.state.has_stored_request = True
            self.state.selected_action = stored.selected_action
            self.state.selected_entities = stored.selected_entities.model_copy(deep=True)
            self.state.edit_buffer = copy.deepcopy(stored.edit_buffer)

            self.temp_address_data = {
                uid: data.model_copy() for uid, data in stored.temp_address_data.items()
            }
            for uid, data in self.temp_address_data.items():
                self.address_cache.register_pending(uid, data)

            record_type = self.state.edit_buffer.get(RECORD_TYPE_KEY)
            if record_type:
                # Fires the same path as a user type change; the guard drops its mapping
                await self._apply_record_type(record_type, TransitionOrigin.RESTORE)

            self.state.custom_fields = self._custom_fields_from_buffer()
            self._capture_original()
            await self._refresh_references()
        finally:
            self.restore_guard.complete(token)

        self.logger.info(
            "Restored stored request",
            extra={"action": stored.selected_action.value, "record_type": self.state.record_type}
        )

    # =========================================================================
    # Editing
    # =========================================================================

    @session_operation("Unable to select the action")
    async def select_action(self, action: VaultAction) -> OperationResult:
        self._ensure_unlocked()
        if self.state.workflow_state in FINISHED_STATES:
            self.state.workflow_state = apply_event(
                self.state.workflow_state, WorkflowEvent.RESET, self.state.role
            )
        self._ensure_editable()

        self._reset_edit_data()
        self.state.selected_action = action
        self.logger.info("Action selected", extra={"action": action.value})
        return self._result(True)

    @session_operation("Unable to load the record type template")
    async def select_record_type(self, record_type: str) -> OperationResult:
        return await self._change_record_type(record_type, TransitionOrigin.USER)

    @session_operation("Unable to load the record type template")
    async def change_record_type(
        self,
        record_type: str,
        origin: TransitionOrigin = TransitionOrigin.USER
    ) -> OperationResult:
        return await self._change_record_type(record_type, origin)

    async def _change_record_type(self, record_type: str, origin: TransitionOrigin) -> OperationResult:
        self._ensure_unlocked()
        self._ensure_editable()
        applied = await self._apply_record_type(record_type, origin)
        if applied:
            await self._refresh_references()
        return self._result(True, data={"mapping_applied": applied})

    async def _apply_record_type(self, record_type: str, origin: TransitionOrigin) -> bool:
        descriptors = await self._compile(record_type)
        old_descriptors = self.state.descriptors
        self.state.descriptors = descriptors
        self.state.template_message = None if descriptors else NO_FIELDS_MESSAGE

        if not self.restore_guard.allows_mapping(origin):
            self.state.record_type = record_type
            self.logger.info(
                "Mapping skipped while a restore is in flight",
                extra={"record_type": record_type}
            )
            return False

        outcome = self.transitions.transition(
            new_record_type=record_type,
            new_descriptors=descriptors,
            old_buffer=self.state.edit_buffer,
            old_descriptors=old_descriptors,
            original_record_type=self.state.original_record_type,
            original_buffer=self.state.original_buffer if self.state.original_record_type else None,
            original_custom_fields=self.original_custom_fields,
            action=self.state.selected_action,
        )
        self.state.record_type = record_type
        self.state.edit_buffer = outcome.buffer
        self.state.custom_fields = outcome.custom_fields
        return True

    @session_operation("Unable to load the record details")
    async def select_entity_for_update(self, entity: SelectedEntity) -> OperationResult:
        """
        Load an existing record into the buffer for an update

        Reopening the entity a restored draft was saved for keeps the
        draft; any other entity replaces the whole buffer.
        """
        self._ensure_unlocked()
        self._ensure_editable()
        if self.state.selected_action != VaultAction.RECORD_UPDATE:
            raise InvalidStateError("Select the update action before choosing a record")

        current = self.state.selected_entities.record_for_update
        if current is not None and current.uid == entity.uid and self.state.has_stored_request:
            return self._result(True, data={"preserved": True})

        stored = await self.gateway.fetch_secret_details(entity.uid)
        if stored is None:
            return self._result(False, f"Record {entity.title or entity.uid} was not found")

        record_type = stored.type or None
        descriptors = await self._compile(record_type) if record_type else []
        mapping = self.mapper.map_values(descriptors, stored, record_type)

        self._reset_edit_data()
        self.state.selected_action = VaultAction.RECORD_UPDATE
        self.state.selected_entities = SelectedEntities(record_for_update=entity)
        self.state.record_type = record_type
        self.state.descriptors = descriptors
        self.state.template_message = None if descriptors else NO_FIELDS_MESSAGE
        # Stored values are shown alongside; the buffer only collects changes
        self.state.current_values = mapping.as_edit_buffer()
        self.state.edit_buffer = blank_update_buffer(entity.uid, record_type, descriptors, mapping.custom_fields)
        self.state.custom_fields = [
            custom_field.model_copy(update={"value": ""}) for custom_field in mapping.custom_fields
        ]
        self._capture_original()
        await self._refresh_references(self.state.current_values)

        self.logger.info(
            "Loaded record for update",
            extra={"record_type": record_type, "reference_uid": entity.uid}
        )
        return self._result(True)

    @session_operation("Unable to select the target")
    async def select_entities(
        self,
        record: Optional[SelectedEntity] = None,
        folder: Optional[SelectedEntity] = None
    ) -> OperationResult:
        """Pick the record and/or folder a sharing action applies to"""
        self._ensure_unlocked()
        self._ensure_editable()
        self.state.selected_entities.record = record
        self.state.selected_entities.folder = folder
        return self._result(True)

    @session_operation("Unable to update the field")
    async def set_field(self, name: str, value: Any) -> OperationResult:
        self._ensure_unlocked()
        self._ensure_editable()
        self.state.edit_buffer[name] = value
        for custom_field in self.state.custom_fields:
            if custom_field.id == name:
                custom_field.value = value
        return self._result(True)

    # =========================================================================
    # Address references
    # =========================================================================

    @session_operation("Unable to load the address")
    async def set_address_reference(self, uid: str, key: str = ADDRESS_REF_KEY) -> OperationResult:
        self._ensure_unlocked()
        self._ensure_editable()
        self.state.edit_buffer[key] = uid
        entry = await self.address_cache.resolve(uid)
        return self._result(True, data={
            "uid": uid,
            "state": entry.state.value,
            "display": self.address_cache.format_display(uid),
        })

    @session_operation("Unable to add the address")
    async def add_pending_address(
        self,
        data: PendingAddressData,
        key: str = ADDRESS_REF_KEY
    ) -> OperationResult:
        """Reference an address that will be created when the request executes"""
        self._ensure_unlocked()
        self._ensure_editable()
        uid = generate_pending_reference_uid()
        self.temp_address_data[uid] = data
        self.address_cache.register_pending(uid, data)
        self.state.edit_buffer[key] = uid
        return self._result(True, data={"uid": uid, "display": self.address_cache.format_display(uid)})

    @session_operation("Unable to remove the address")
    async def remove_address_reference(self, key: str = ADDRESS_REF_KEY) -> OperationResult:
        self._ensure_unlocked()
        self._ensure_editable()
        uid = self.state.edit_buffer.get(key)
        self.state.edit_buffer[key] = ""
        if uid:
            self.address_cache.remove(uid)
            self.temp_address_data.pop(uid, None)
        return self._result(True)

    def address_display(self, uid: str) -> str:
        return self.address_cache.format_display(uid)

    # =========================================================================
    # Workflow
    # =========================================================================

    @session_operation("Failed to save the request")
    async def save(self) -> OperationResult:
        """Persist the current edits as the ticket's stored request"""
        self._ensure_unlocked()
        next_state = apply_event(
            self.state.workflow_state, WorkflowEvent.SAVE, self.state.role,
            has_stored_request=self.state.has_stored_request
        )
        self._validate()

        request = StoredRequest(
            ticket_id=self.ticket_id,
            selected_action=self.state.selected_action,
            edit_buffer=copy.deepcopy(self.state.edit_buffer),
            selected_entities=self.state.selected_entities.model_copy(deep=True),
            temp_address_data={uid: data.model_copy() for uid, data in self.temp_address_data.items()},
            timestamp=utc_now(),
            submitted_by=self.actor_email,
        )
        result = await self.gateway.save_stored_request(self.ticket_id, request)
        if not result.success:
            return self._result(False, result.message or "Failed to save the request")

        self.state.workflow_state = next_state
        self.state.has_stored_request = True
        self.logger.info(
            f"Saved request {redact_buffer(request.edit_buffer)}",
            extra={"action": request.selected_action.value, "state": next_state.value}
        )
        return self._result(True, result.message, data={"assigned_reviewer": result.assigned_reviewer})

    @session_operation("Failed to clear the stored request")
    async def clear(self) -> OperationResult:
        """Requester discards their own stored request"""
        self._ensure_unlocked()
        next_state = apply_event(
            self.state.workflow_state, WorkflowEvent.CLEAR, self.state.role,
            has_stored_request=self.state.has_stored_request
        )
        result = await self.gateway.clear_stored_request(self.ticket_id)
        if not result.success:
            return self._result(False, result.message or "Failed to clear the stored request")

        self.state.workflow_state = next_state
        self._reset_after_finish()
        return self._result(True, result.message)

    @session_operation("Failed to execute the request")
    async def execute(self) -> OperationResult:
        """
        Administrator submits the buffer to the vault

        Pending addresses are created first and their placeholder UIDs
        swapped for the created ones. On success the stored request is
        cleared and the session locks for execute_cooldown_seconds.
        """
        self._ensure_unlocked()
        next_state = apply_event(
            self.state.workflow_state, WorkflowEvent.EXECUTE, self.state.role,
            has_stored_request=self.state.has_stored_request
        )
        self._validate()
        action = self.state.selected_action

        created = await self._create_pending_addresses()
        if created is not None:
            return created

        buffer = copy.deepcopy(self.state.edit_buffer)

        payload = build_execution_payload(
            action, buffer, self.state.descriptors, self.state.custom_fields, self.state.selected_entities,
            current_values=self.state.current_values,
        )
        result = await self.gateway.execute(self.ticket_id, action.value, payload)
        if not result.success:
            return self._result(False, result.message or "Failed to execute the request")

        self.state.workflow_state = next_state
        await self._clear_after_decision()
        self._locked_until = self._clock() + settings.execute_cooldown_seconds
        self._reset_edit_data()
        self.logger.info("Request executed", extra={"action": action.value, "state": next_state.value})
        return self._result(True, result.message, data={"created_entity_id": result.created_entity_id})

    @session_operation("Failed to reject the request")
    async def reject(self, reason: str) -> OperationResult:
        """Administrator rejects the request with a mandatory reason"""
        self._ensure_unlocked()
        next_state = apply_event(
            self.state.workflow_state, WorkflowEvent.REJECT, self.state.role,
            has_stored_request=self.state.has_stored_request
        )
        if not reason or not reason.strip():
            raise ValidationError(
                "A rejection reason is required",
                details={"field_errors": [{"field": "reason", "message": "Enter a reason for rejecting"}]}
            )

        result = await self.gateway.reject(self.ticket_id, reason.strip())
        if not result.success:
            return self._result(False, result.message or "Failed to reject the request")

        self.state.workflow_state = next_state
        await self._clear_after_decision()
        self._reset_after_finish()
        self.logger.info("Request rejected", extra={"state": next_state.value})
        return self._result(True, result.message)

    def is_locked(self) -> bool:
        return self._clock() < self._locked_until

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _compile(self, record_type: str) -> List[FieldDescriptor]:
        try:
            schema = await self.schema_source.fetch_schema(record_type)
        except Exception as e:
            self.logger.warning(
                f"Schema fetch failed, continuing with standard fields: {e}",
                extra={"record_type": record_type}
            )
            return []
        return self.compiler.compile(record_type, schema)

    async def _refresh_references(self, buffer: Optional[Dict[str, Any]] = None) -> None:
        if buffer is None:
            buffer = self.state.edit_buffer
        uids = collect_reference_uids(buffer, self.state.descriptors, self.state.custom_fields)
        if uids:
            await self.address_cache.refresh(uids)

    async def _create_pending_addresses(self) -> Optional[OperationResult]:
        """
        Create every pending address the buffer points at

        Each created UID replaces its placeholder in the session itself, so
        a retry after a later failure does not create the address again.
        """
        buffer = self.state.edit_buffer
        for key, value in list(buffer.items()):
            if not isinstance(value, str) or not is_pending_reference_uid(value):
                continue
            data = self.temp_address_data.get(value)
            if data is None:
                return self._result(False, "Address details for the new address are missing")
            result = await self.gateway.execute(
                self.ticket_id, VaultAction.RECORD_ADD.value, build_address_payload(data)
            )
            if not result.success or not result.created_entity_id:
                return self._result(False, result.message or "Failed to create the address")

            created_uid = result.created_entity_id
            buffer[key] = created_uid
            self.temp_address_data.pop(value, None)
            self.address_cache.promote_pending(value, created_uid)
            self.logger.info("Created pending address", extra={"reference_uid": created_uid})
        return None

    async def _clear_after_decision(self) -> None:
        if not self.state.has_stored_request:
            return
        try:
            cleared = await self.gateway.clear_stored_request(self.ticket_id)
            if not cleared.success:
                self.logger.warning(f"Stored request was not cleared: {cleared.message}")
        except Exception as e:
            self.logger.warning(f"Stored request was not cleared: {e}")
        self.state.has_stored_request = False

    def _validate(self) -> None:
        errors = self.validator.validate(
            self.state.selected_action,
            self.state.edit_buffer,
            self.state.selected_entities,
            self.state.descriptors,
            self.state.current_values,
        )
        if errors:
            raise ValidationError(
                "Please complete the highlighted fields",
                details={"field_errors": [error.model_dump() for error in errors]}
            )

    def _custom_fields_from_buffer(self) -> List[CustomField]:
        """Custom fields for restored buffer keys no descriptor or action input covers"""
        known = {descriptor.name for descriptor in self.state.descriptors}
        known.update(CORE_KEYS)
        known.add(NOTES_KEY)
        if self.state.selected_action is not None:
            known.update(get_action(self.state.selected_action).field_names())
        return [
            CustomField(
                id=key,
                clean_label=clean_field_name(key),
                value=value,
                original_field_name=key,
                input_kind=infer_custom_input_kind(key),
            )
            for key, value in self.state.edit_buffer.items()
            if key not in known and not key.startswith("_") and key != ADDRESS_REF_KEY
        ]

    def _capture_original(self) -> None:
        self.state.original_record_type = self.state.record_type
        self.state.original_buffer = copy.deepcopy(self.state.edit_buffer)
        self.original_custom_fields = [custom_field.model_copy() for custom_field in self.state.custom_fields]

    def _reset_edit_data(self) -> None:
        self.state.selected_action = None
        self.state.record_type = None
        self.state.original_record_type = None
        self.state.descriptors = []
        self.state.edit_buffer = {}
        self.state.original_buffer = {}
        self.state.custom_fields = []
        self.state.current_values = {}
        self.state.selected_entities = SelectedEntities()
        self.state.template_message = None
        self.original_custom_fields = []
        self.temp_address_data = {}

    def _reset_after_finish(self) -> None:
        self._reset_edit_data()
        self.state.has_stored_request = False
        self.state.workflow_state = apply_event(
            self.state.workflow_state, WorkflowEvent.RESET, self.state.role
        )

    def _ensure_unlocked(self) -> None:
        if self.is_locked():
            raise SessionLockedError("Please wait a moment before starting a new action")

    def _ensure_editable(self) -> None:
        if self.state.workflow_state not in EDITABLE_STATES:
            raise InvalidStateError(
                "Select an action to start a new request",
                details={"state": self.state.workflow_state.value}
            )

    def _result(
        self,
        success: bool,
        message: Optional[str] = None,
        field_errors: Optional[List[FieldError]] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        return OperationResult(
            success=success,
            message=message,
            field_errors=field_errors or [],
            state=self.state.workflow_state,
            data=data or {},
        )
