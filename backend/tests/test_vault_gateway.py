"""Tests for failure message selection and the static schema source"""
import pytest

from vaultdesk.domain.enums import Role
from vaultdesk.domain.errors import DomainError, VaultGatewayError
from vaultdesk.services.vault_gateway import (
    ADMINISTRATOR_GUIDANCE, REQUESTER_GUIDANCE, StaticSchemaSource, describe_failure
)

DEFAULT = "Failed to execute the request"


def test_status_code_gets_administrator_guidance():
    message = describe_failure(VaultGatewayError("boom", status_code=503), Role.ADMINISTRATOR, DEFAULT)
    assert message.startswith("Service Unavailable (503)")
    assert ADMINISTRATOR_GUIDANCE in message


def test_status_code_gets_requester_guidance():
    message = describe_failure(VaultGatewayError("boom", status_code=401), Role.REQUESTER, DEFAULT)
    assert message.startswith("Unauthorized (401)")
    assert REQUESTER_GUIDANCE in message


def test_status_code_found_in_message():
    message = describe_failure(VaultGatewayError("upstream returned 502"), Role.REQUESTER, DEFAULT)
    assert message.startswith("Bad Gateway (502)")


def test_unlisted_status_uses_message():
    assert describe_failure(VaultGatewayError("Record is locked", status_code=409), Role.REQUESTER, DEFAULT) == \
        "Record is locked"


def test_html_body_falls_back_to_default():
    assert describe_failure(Exception("<html><body>Error</body></html>"), Role.REQUESTER, DEFAULT) == DEFAULT


def test_long_message_falls_back_to_default():
    assert describe_failure(Exception("x" * 501), Role.REQUESTER, DEFAULT) == DEFAULT


def test_domain_error_message_is_used():
    assert describe_failure(DomainError("Title already exists"), Role.ADMINISTRATOR, DEFAULT) == \
        "Title already exists"


def test_empty_message_falls_back_to_default():
    assert describe_failure(Exception(""), Role.REQUESTER, DEFAULT) == DEFAULT


@pytest.mark.asyncio
async def test_static_schema_source():
    source = StaticSchemaSource()
    schema = await source.fetch_schema("login")
    assert schema.record_type == "login"
    assert await source.fetch_schema("nope") is None
