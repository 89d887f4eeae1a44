"""Tests for mapping stored secrets onto compiled descriptors"""
from vaultdesk.config.settings import settings
from vaultdesk.domain.enums import InputKind
from vaultdesk.domain.models import RecordSchema, StoredSecretValue
from vaultdesk.domain.record_templates import get_record_template
from vaultdesk.engine.field_mapper import infer_custom_input_kind, map_values_to_fields
from vaultdesk.engine.template_compiler import compile_template
from vaultdesk.engine.value_extractor import recompose_entries


def _descriptors(record_type):
    return compile_template(record_type, get_record_template(record_type))


def _secret(record_type, fields, custom=None):
    return StoredSecretValue.model_validate({
        "uid": "REC9", "title": "T", "type": record_type, "fields": fields, "custom": custom or [],
    })


def test_blank_buffer_without_stored_value():
    result = map_values_to_fields(_descriptors("login"), None, "login")
    assert result.buffer == {
        "title": "", "notes": "", "login": "", "password": "", "url": "", "oneTimeCode": "",
        "recordType": "login",
    }
    assert result.custom_fields == []


def test_login_values_fill_their_slots(login_secret):
    result = map_values_to_fields(_descriptors("login"), login_secret, "login")

    assert result.buffer["record"] == "REC1"
    assert result.buffer["title"] == "Build server"
    assert result.buffer["notes"] == "Rotated quarterly"
    assert result.buffer["login"] == "ci-bot"
    assert result.buffer["password"] == settings.masked_secret_marker
    assert result.buffer["url"] == "https://ci.example.com"
    assert result.buffer["oneTimeCode"] == ""
    assert result.custom_fields == []


def test_first_occurrence_wins_and_later_ones_become_custom(contact_secret):
    result = map_values_to_fields(_descriptors("contact"), contact_secret, "contact")

    assert result.buffer["name_first"] == "Jane"
    assert result.buffer["name_last"] == "Doe"
    assert result.buffer["phone_number"] == "555-0100"
    assert result.buffer["phone_type"] == "Work"
    assert result.buffer["email"] == "jane@example.com"
    assert result.buffer["addressRef"] == "ADDR1"

    assert len(result.custom_fields) == 1
    duplicate = result.custom_fields[0]
    assert duplicate.id == "phone_2"
    assert duplicate.clean_label == "Phone #2"
    assert duplicate.value == "555-0199 (Mobile)"
    assert duplicate.input_kind == InputKind.PHONE


def test_labelled_duplicate_uses_label():
    secret = _secret("login", [
        {"type": "url", "value": ["https://a"]},
        {"type": "url", "label": "backup", "value": ["https://b"]},
    ])
    result = map_values_to_fields(_descriptors("login"), secret, "login")

    assert result.buffer["url"] == "https://a"
    assert [(c.id, c.clean_label, c.value) for c in result.custom_fields] == [
        ("url_backup", "Url (backup)", "https://b")
    ]


def test_unmatched_types_become_custom_fields(login_secret):
    result = map_values_to_fields(_descriptors("sshKeys"), login_secret, "sshKeys")

    assert result.buffer["login"] == "ci-bot"
    customs = {c.id: c for c in result.custom_fields}
    assert set(customs) == {"password", "url"}
    assert customs["password"].value == settings.masked_secret_marker
    assert customs["password"].input_kind == InputKind.MASKED
    assert customs["url"].clean_label == "Url"
    assert customs["url"].input_kind == InputKind.URL


def test_labelled_entry_goes_to_labelled_slot():
    secret = _secret("sshKeys", [{"type": "password", "label": "passphrase", "value": ["pp"]}])
    result = map_values_to_fields(_descriptors("sshKeys"), secret, "sshKeys")
    assert result.buffer["password.passphrase"] == settings.masked_secret_marker
    assert result.custom_fields == []


def test_unmatched_entry_with_label():
    secret = _secret("login", [{"type": "text", "label": "department", "value": ["Ops"]}])
    result = map_values_to_fields(_descriptors("login"), secret, "login")
    assert [(c.id, c.clean_label) for c in result.custom_fields] == [("text_department", "Text (department)")]


def test_composite_parts_outside_template_shape_become_custom():
    secret = _secret("contact", [{"type": "phone", "value": [{"number": "555", "carrier": "Acme"}]}])
    result = map_values_to_fields(_descriptors("contact"), secret, "contact")

    assert result.buffer["phone_number"] == "555"
    assert [(c.id, c.clean_label, c.value) for c in result.custom_fields] == [
        ("phone_carrier", "Carrier", "Acme")
    ]


def test_composite_type_with_primitive_value_is_mapped_as_scalar():
    secret = _secret("contact", [{"type": "phone", "value": ["555-0100"]}])
    result = map_values_to_fields(_descriptors("contact"), secret, "contact")

    assert result.buffer["phone_number"] == ""
    assert [(c.id, c.value) for c in result.custom_fields] == [("phone", "555-0100")]


def test_structured_value_for_scalar_slot_becomes_custom_field():
    secret = _secret("login", [{"type": "login", "value": [[1, 2]]}])
    result = map_values_to_fields(_descriptors("login"), secret, "login")

    assert result.buffer["login"] == ""
    assert [(c.original_field_name, c.value) for c in result.custom_fields] == [("login", "1, 2")]
    assert result.custom_fields[0].id != "login"


def test_unknown_structured_entry_is_kept_as_text():
    secret = _secret("login", [], custom=[
        {"type": "securityQuestion", "value": [{"question": "First pet?", "answer": "Rex"}]},
        {"type": "securityQuestion", "value": [{"nested": {"deep": 1}}]},
    ])
    result = map_values_to_fields(_descriptors("login"), secret, "login")

    assert [(c.clean_label, c.value) for c in result.custom_fields] == [
        ("Security Question", "question: First pet?, answer: Rex"),
        ("Security Question", '{"nested": {"deep": 1}}'),
    ]


def test_structured_password_stays_masked():
    secret = _secret("login", [{"type": "password", "value": [{"hash": "x"}]}])
    result = map_values_to_fields(_descriptors("login"), secret, "login")
    assert [c.value for c in result.custom_fields] == [settings.masked_secret_marker]


def test_login_with_unknown_totp_entry():
    secret = _secret("login", [
        {"type": "login", "value": ["alice"]},
        {"type": "password", "value": ["secret"]},
        {"type": "custom_totp", "value": ["123456"]},
    ])
    result = map_values_to_fields(_descriptors("login"), secret, "login")

    assert result.buffer["login"] == "alice"
    assert result.buffer["password"] == settings.masked_secret_marker
    assert result.buffer["url"] == ""
    assert [(c.clean_label, c.value) for c in result.custom_fields] == [("Totp", "123456")]


def test_phone_descriptors_follow_schema_sample_not_stored_value():
    schema = RecordSchema.model_validate({
        "$id": "custom",
        "fields": [{"$ref": "phone", "value": [{"number": "", "ext": "", "type": ""}]}],
    })
    descriptors = compile_template("custom", schema)
    assert [d.name for d in descriptors if d.parent_type] == ["phone_number", "phone_ext", "phone_type"]

    secret = _secret("custom", [{"type": "phone", "value": [{"number": "555-1212", "type": "Work"}]}])
    result = map_values_to_fields(descriptors, secret, "custom")

    assert result.buffer["phone_number"] == "555-1212"
    assert result.buffer["phone_type"] == "Work"
    assert result.buffer["phone_ext"] == ""
    assert result.custom_fields == []


def test_custom_section_entries_are_mapped_too():
    secret = _secret("login", [], custom=[{"type": "text", "label": "team", "value": ["Platform"]}])
    result = map_values_to_fields(_descriptors("login"), secret, "login")
    assert [(c.id, c.value) for c in result.custom_fields] == [("text_team", "Platform")]


def test_every_stored_entry_is_represented(contact_secret):
    descriptors = _descriptors("contact")
    result = map_values_to_fields(descriptors, contact_secret, "contact")

    slot_values = {
        name: value for name, value in result.buffer.items()
        if value and name in {d.name for d in descriptors} and name != "title"
    }
    # name (2 parts), first phone (2 parts), email, addressRef
    assert len(slot_values) == 6
    assert len(result.custom_fields) == 1


def test_mapped_values_recompose_to_the_stored_entries(contact_secret):
    descriptors = _descriptors("contact")
    buffer = map_values_to_fields(descriptors, contact_secret, "contact").buffer

    entries = recompose_entries(buffer, descriptors)
    assert [(e.type, e.value) for e in entries] == [
        ("name", [{"first": "Jane", "last": "Doe"}]),
        ("email", ["jane@example.com"]),
        ("phone", [{"number": "555-0100", "type": "Work"}]),
        ("addressRef", ["ADDR1"]),
    ]


def test_as_edit_buffer_merges_custom_values(contact_secret):
    result = map_values_to_fields(_descriptors("contact"), contact_secret, "contact")
    merged = result.as_edit_buffer()
    assert merged["phone_2"] == "555-0199 (Mobile)"
    assert "phone_2" not in result.buffer


def test_infer_custom_input_kind():
    assert infer_custom_input_kind("addressRef") == InputKind.REFERENCE
    assert infer_custom_input_kind("text_website") == InputKind.URL
    assert infer_custom_input_kind("birthDate") == InputKind.DATE
    assert infer_custom_input_kind("text_department") == InputKind.TEXT
