"""Tests for the per-ticket edit session"""
import pytest

from vaultdesk.config.settings import settings
from vaultdesk.domain.enums import (
    AddressCacheState, Role, TransitionOrigin, VaultAction, WorkflowState
)
from vaultdesk.domain.errors import VaultGatewayError
from vaultdesk.domain.models import PendingAddressData, SelectedEntity, StoredRequest
from vaultdesk.engine.template_compiler import NO_FIELDS_MESSAGE
from vaultdesk.services.request_session import RequestSession
from vaultdesk.utils.time import utc_now

STRONG_PASSWORD = "Str0ng&Secure-Passw0rd!"
TICKET = "TCK-1"


def _stored_login_request(**buffer_overrides):
    buffer = {
        "recordType": "login",
        "title": "Saved title",
        "login": "bob",
        "password": STRONG_PASSWORD,
        "legacy_field": "keep",
    }
    buffer.update(buffer_overrides)
    return StoredRequest(
        ticket_id=TICKET,
        selected_action=VaultAction.RECORD_ADD,
        edit_buffer=buffer,
        timestamp=utc_now(),
    )


async def _fill_login(session):
    await session.select_action(VaultAction.RECORD_ADD)
    await session.select_record_type("login")
    await session.set_field("title", "CI account")
    await session.set_field("login", "ci-bot")
    await session.set_field("password", STRONG_PASSWORD)


# =============================================================================
# Opening
# =============================================================================

@pytest.mark.asyncio
async def test_open_without_stored_request(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock)
    result = await session.open()

    assert result.success is True
    assert result.state == WorkflowState.EDITING_REQUESTER
    assert gateway.calls[:2] == ["fetch_role", "fetch_stored_request"]


@pytest.mark.asyncio
async def test_failed_role_lookup_falls_back_to_requester(admin_gateway, clock):
    admin_gateway.role_error = VaultGatewayError("role service down", status_code=503)
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    result = await session.open()

    assert result.success is True
    assert session.state.role == Role.REQUESTER


@pytest.mark.asyncio
async def test_administrator_keeps_role_state_when_stored_fetch_fails(admin_gateway, clock):
    admin_gateway.stored_error = VaultGatewayError("storage unavailable", status_code=503)
    session = RequestSession(TICKET, admin_gateway, clock=clock)

    result = await session.open()

    assert result.success is False
    assert result.state == WorkflowState.EDITING_ADMINISTRATOR
    assert session.state.role == Role.ADMINISTRATOR


@pytest.mark.asyncio
async def test_administrator_restores_stored_request_exactly(admin_gateway, clock):
    stored = _stored_login_request()
    admin_gateway.stored[TICKET] = stored
    session = RequestSession(TICKET, admin_gateway, clock=clock)

    result = await session.open()

    assert result.success is True
    assert result.data == {"restored": True}
    assert session.state.workflow_state == WorkflowState.EDITING_ADMINISTRATOR
    assert session.state.edit_buffer == stored.edit_buffer
    assert session.state.record_type == "login"
    assert [d.name for d in session.state.descriptors][:3] == ["title", "notes", "login"]
    assert [c.id for c in session.state.custom_fields] == ["legacy_field"]
    assert session.restore_guard.is_active() is False


@pytest.mark.asyncio
async def test_stored_request_for_other_ticket_is_ignored(gateway, clock):
    stored = _stored_login_request()
    gateway.stored[TICKET] = stored.model_copy(update={"ticket_id": "OTHER"})
    session = RequestSession(TICKET, gateway, clock=clock)

    result = await session.open()

    assert result.success is True
    assert session.state.edit_buffer == {}
    assert session.state.has_stored_request is False


@pytest.mark.asyncio
async def test_restored_pending_address_is_not_fetched(admin_gateway, clock):
    uid = f"{settings.pending_reference_prefix}abc"
    stored = _stored_login_request(addressRef=uid)
    stored.temp_address_data = {uid: PendingAddressData(title="New", street1="2 Elm St")}
    admin_gateway.stored[TICKET] = stored
    session = RequestSession(TICKET, admin_gateway, clock=clock)

    await session.open()

    assert admin_gateway.resolve_calls == []
    assert session.address_display(uid) == "New: 2 Elm St"


# =============================================================================
# Record types
# =============================================================================

@pytest.mark.asyncio
async def test_return_to_original_after_round_trip(admin_gateway, clock):
    admin_gateway.stored[TICKET] = _stored_login_request()
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()
    original = dict(session.state.edit_buffer)

    away = await session.change_record_type("sshKeys")
    assert away.data == {"mapping_applied": True}
    assert session.state.edit_buffer["password.passphrase"] == STRONG_PASSWORD

    await session.change_record_type("login")
    assert session.state.edit_buffer == original
    assert [c.id for c in session.state.custom_fields] == ["legacy_field"]


@pytest.mark.asyncio
async def test_update_record_loads_entity_and_type_change_starts_blank(gateway, clock, login_secret):
    gateway.secrets["REC1"] = login_secret
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_UPDATE)

    result = await session.select_entity_for_update(SelectedEntity(uid="REC1", title="Build server"))
    assert result.success is True
    assert session.state.selected_action == VaultAction.RECORD_UPDATE
    assert session.state.current_values["login"] == "ci-bot"
    assert session.state.current_values["password"] == settings.masked_secret_marker
    assert session.state.edit_buffer["record"] == "REC1"
    assert session.state.edit_buffer["recordType"] == "login"
    assert session.state.edit_buffer["login"] == ""
    assert session.state.edit_buffer["password"] == ""
    loaded = dict(session.state.edit_buffer)

    await session.change_record_type("sshKeys")
    assert session.state.edit_buffer == {"recordType": "sshKeys", "record": "REC1"}

    await session.change_record_type("login")
    assert session.state.edit_buffer == loaded


@pytest.mark.asyncio
async def test_unedited_update_is_not_executed(admin_gateway, clock, login_secret):
    admin_gateway.secrets["REC1"] = login_secret
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_UPDATE)
    await session.select_entity_for_update(SelectedEntity(uid="REC1", title="Build server"))

    unchanged = await session.execute()
    assert unchanged.success is False
    assert [error.message for error in unchanged.field_errors] == ["Enter at least one field to update"]
    assert admin_gateway.execute_calls == []

    await session.set_field("title", "Deploy server")
    result = await session.execute()

    assert result.success is True
    (call,) = admin_gateway.execute_calls
    assert call["action"] == VaultAction.RECORD_UPDATE.value
    assert call["payload"] == {"recordType": "login", "title": "Deploy server", "record": "REC1"}


@pytest.mark.asyncio
async def test_update_requires_update_action(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_ADD)

    result = await session.select_entity_for_update(SelectedEntity(uid="REC1"))
    assert result.success is False
    assert gateway.calls.count("fetch_secret_details") == 0


@pytest.mark.asyncio
async def test_restore_origin_mapping_is_dropped_while_guarded(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_ADD)
    await session.set_field("title", "Keep me")
    session.restore_guard.begin()

    dropped = await session.change_record_type("login", origin=TransitionOrigin.RESTORE)
    assert dropped.data == {"mapping_applied": False}
    assert session.state.edit_buffer == {"title": "Keep me"}

    applied = await session.change_record_type("login", origin=TransitionOrigin.USER)
    assert applied.data == {"mapping_applied": True}
    assert session.state.edit_buffer["title"] == "Keep me"
    assert session.state.edit_buffer["recordType"] == "login"


@pytest.mark.asyncio
async def test_schema_failure_falls_back_to_standard_fields(gateway, clock):
    gateway.schema_error = VaultGatewayError("templates unavailable", status_code=503)
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_ADD)

    result = await session.select_record_type("login")
    assert result.success is True
    assert session.state.descriptors == []
    assert session.state.template_message == NO_FIELDS_MESSAGE


# =============================================================================
# Address references
# =============================================================================

@pytest.mark.asyncio
async def test_address_reference_resolves_once(gateway, clock, home_address):
    gateway.addresses["ADDR1"] = home_address
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_ADD)
    await session.select_record_type("contact")

    result = await session.set_address_reference("ADDR1")
    assert result.data["state"] == AddressCacheState.RESOLVED.value
    assert result.data["display"] == "Home: 1 Main St, Apt 2 | Springfield, IL, 62701"

    await session.set_address_reference("ADDR1")
    assert gateway.resolve_calls == ["ADDR1"]

    await session.remove_address_reference()
    assert session.state.edit_buffer["addressRef"] == ""
    assert session.address_cache.get("ADDR1") is None


# =============================================================================
# Save / clear
# =============================================================================

@pytest.mark.asyncio
async def test_requester_save_and_overwrite(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock, actor_email="req@example.com")
    await session.open()
    await _fill_login(session)

    first = await session.save()
    assert first.success is True
    assert first.state == WorkflowState.SAVED
    assert first.data == {"assigned_reviewer": "admin@example.com"}

    await session.set_field("title", "CI account v2")
    second = await session.save()
    assert second.success is True
    assert len(gateway.save_calls) == 2
    assert list(gateway.stored) == [TICKET]
    assert gateway.stored[TICKET].edit_buffer["title"] == "CI account v2"
    assert gateway.stored[TICKET].submitted_by == "req@example.com"


@pytest.mark.asyncio
async def test_save_reports_field_errors(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_ADD)
    await session.select_record_type("login")

    result = await session.save()
    assert result.success is False
    assert {error.field for error in result.field_errors} == {"title", "login", "password"}
    assert result.state == WorkflowState.EDITING_REQUESTER
    assert gateway.save_calls == []


@pytest.mark.asyncio
async def test_share_folder_saves_selected_folder(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.SHARE_FOLDER)
    await session.set_field("action", "grant")
    await session.set_field("user", "a@example.com")

    missing = await session.save()
    assert [error.field for error in missing.field_errors] == ["folder"]

    await session.select_entities(folder=SelectedEntity(uid="F1", title="Team"))
    result = await session.save()
    assert result.success is True
    assert gateway.stored[TICKET].selected_entities.folder.uid == "F1"
    assert gateway.stored[TICKET].selected_action == VaultAction.SHARE_FOLDER


@pytest.mark.asyncio
async def test_administrator_cannot_save(admin_gateway, clock):
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()
    await _fill_login(session)

    result = await session.save()
    assert result.success is False
    assert admin_gateway.save_calls == []


@pytest.mark.asyncio
async def test_requester_clears_stored_request(gateway, clock):
    gateway.stored[TICKET] = _stored_login_request()
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    assert session.state.workflow_state == WorkflowState.EDITING_REQUESTER

    result = await session.clear()
    assert result.success is True
    assert result.state == WorkflowState.EDITING_REQUESTER
    assert gateway.clear_calls == [TICKET]
    assert session.state.edit_buffer == {}
    assert session.state.has_stored_request is False


@pytest.mark.asyncio
async def test_clear_without_stored_request_fails(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()

    result = await session.clear()
    assert result.success is False
    assert gateway.clear_calls == []


# =============================================================================
# Execute / reject
# =============================================================================

@pytest.mark.asyncio
async def test_execute_clears_draft_and_locks_briefly(admin_gateway, clock):
    admin_gateway.stored[TICKET] = _stored_login_request()
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()

    result = await session.execute()

    assert result.success is True
    assert result.state == WorkflowState.EXECUTED
    assert result.data == {"created_entity_id": "NEW1"}
    call = admin_gateway.execute_calls[0]
    assert call["action"] == "record-add"
    assert call["payload"]["title"] == "Saved title"
    assert {"type": "login", "value": ["bob"]} in call["payload"]["fields"]
    assert call["payload"]["custom"][0]["value"] == ["keep"]
    assert admin_gateway.stored == {}
    assert session.is_locked() is True

    locked = await session.select_action(VaultAction.RECORD_ADD)
    assert locked.success is False

    clock.advance(settings.execute_cooldown_seconds)
    unlocked = await session.select_action(VaultAction.RECORD_ADD)
    assert unlocked.success is True
    assert unlocked.state == WorkflowState.EDITING_ADMINISTRATOR


@pytest.mark.asyncio
async def test_execute_creates_pending_address_first(admin_gateway, clock):
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_ADD)
    await session.select_record_type("contact")
    await session.set_field("title", "Jane")
    await session.set_field("name_first", "Jane")
    await session.set_field("name_last", "Doe")
    added = await session.add_pending_address(PendingAddressData(title="New", street1="2 Elm St", city="Town"))
    assert added.data["display"] == "New: 2 Elm St | Town"

    result = await session.execute()

    assert result.success is True
    address_call, record_call = admin_gateway.execute_calls
    assert address_call["payload"]["recordType"] == "address"
    assert {"type": "addressRef", "value": ["NEW1"]} in record_call["payload"]["fields"]
    assert admin_gateway.resolve_calls == []
    assert admin_gateway.clear_calls == []


@pytest.mark.asyncio
async def test_execute_retry_reuses_created_address(admin_gateway, clock):
    admin_gateway.failing_record_types = {"contact"}
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()
    await session.select_action(VaultAction.RECORD_ADD)
    await session.select_record_type("contact")
    await session.set_field("title", "Jane")
    await session.set_field("name_first", "Jane")
    await session.set_field("name_last", "Doe")
    await session.add_pending_address(PendingAddressData(title="New", street1="2 Elm St", city="Town"))

    failed = await session.execute()
    assert failed.success is False
    assert session.state.edit_buffer["addressRef"] == "NEW1"
    assert session.temp_address_data == {}
    assert session.address_display("NEW1") == "New: 2 Elm St | Town"

    admin_gateway.failing_record_types = set()
    retried = await session.execute()

    assert retried.success is True
    record_types = [call["payload"]["recordType"] for call in admin_gateway.execute_calls]
    assert record_types == ["address", "contact", "contact"]
    assert {"type": "addressRef", "value": ["NEW1"]} in admin_gateway.execute_calls[-1]["payload"]["fields"]
    assert admin_gateway.resolve_calls == []


@pytest.mark.asyncio
async def test_execute_failure_keeps_state(admin_gateway, clock):
    admin_gateway.stored[TICKET] = _stored_login_request()
    admin_gateway.execute_error = VaultGatewayError("gateway timeout", status_code=504)
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()

    result = await session.execute()

    assert result.success is False
    assert result.message.startswith("Gateway Timeout (504)")
    assert result.state == WorkflowState.EDITING_ADMINISTRATOR
    assert TICKET in admin_gateway.stored
    assert session.is_locked() is False


@pytest.mark.asyncio
async def test_requester_cannot_execute(gateway, clock):
    session = RequestSession(TICKET, gateway, clock=clock)
    await session.open()
    await _fill_login(session)

    result = await session.execute()
    assert result.success is False
    assert gateway.execute_calls == []


@pytest.mark.asyncio
async def test_reject_requires_reason(admin_gateway, clock):
    admin_gateway.stored[TICKET] = _stored_login_request()
    session = RequestSession(TICKET, admin_gateway, clock=clock)
    await session.open()

    missing = await session.reject("   ")
    assert missing.success is False
    assert [error.field for error in missing.field_errors] == ["reason"]

    result = await session.reject("Not approved by security")
    assert result.success is True
    assert admin_gateway.reject_calls == [{"ticket_id": TICKET, "reason": "Not approved by security"}]
    assert admin_gateway.stored == {}
    assert result.state == WorkflowState.EDITING_ADMINISTRATOR
    assert session.state.edit_buffer == {}
